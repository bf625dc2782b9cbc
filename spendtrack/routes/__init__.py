# Routes package init
"""
SpendTrack Backend — API Routes Package
=========================================

Route Inventory:
    - auth.py:     POST /api/auth/register, POST /api/auth/login
    - expenses.py: POST /api/expenses/add
                   POST /api/expenses/scan
                   GET  /api/expenses/{user_id}
    - health.py:   GET  /, GET /health
"""
