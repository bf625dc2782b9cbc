# Services package init
"""
SpendTrack Backend — Services Layer
=====================================

Service Inventory:
    - extraction:      QR text → JSON → candidate line items
    - validation:      candidate items → validated items (first failure aborts)
    - store:           ExpenseStore interface + SQL implementation
    - materializer:    validated items → persisted expenses (concurrent inserts)
    - expense_service: add / list / scan orchestration
    - auth_service:    register / login
"""
