# Routes package init
"""
ChatSphere Backend: API Routes Package
======================================

Route Inventory:
    - auth.py:      /api/auth      register, login, logout, me
    - users.py:     /api/users     profile, avatar, password, account
    - contacts.py:  /api/contacts  requests, contact list, search
    - messages.py:  /api/messages  send, history, conversations, unread
    - health.py:    /health and the HTML landing page at /

Routes stay thin: read the request, call one service method, wrap the
result in the APIResponse envelope. Errors are raised by services and
formatted by the global exception handlers in main.py.
"""
