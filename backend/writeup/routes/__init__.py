# Routes package init
"""
WriteUp Backend: API Routes Package
===================================

Route Inventory:
    - enhance.py:    POST /api/enhance
    - chat.py:       /api/chat (message, config, presets, export)
    - providers.py:  /api/providers (settings, status, connection test)
    - history.py:    /api/history (list, search, favourite, stats, export)
    - privacy.py:    /api/privacy/excluded-apps
    - health.py:     GET /health

Routes stay thin: parse the request, call one service, return its model.
Errors are raised, never returned; main.py maps them to status codes.
"""
