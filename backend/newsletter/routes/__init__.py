# Routes package init
"""
Newsletter Backend: HTTP Routes
===============================

Route Inventory:
    - health.py:         GET  /health_check
    - subscriptions.py:  POST /subscriptions
                         GET  /subscriptions/confirm
    - newsletters.py:    POST /newsletters            (Basic auth)
    - pages.py:          GET  /
                         GET  /login
                         POST /login

Routes handle HTTP concerns only (forms, headers, status codes) and delegate
to the services layer.
"""
