# Routes package init
"""
Circles Backend — API Routes Package
======================================

Route Inventory:
    - users.py:    /api/users/*     profile, picture, stats, search
    - friends.py:  /api/friends/*   suggestions, requests, friend list
    - files.py:    /api/files/*     stored profile pictures
    - health.py:   /health          service health check

Routes stay thin: they extract request data, resolve the caller, call a
service, and return its response model.
"""
