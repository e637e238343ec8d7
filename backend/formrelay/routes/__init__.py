# Routes package init
"""
FormRelay Backend — API Routes Package
========================================

Route Inventory (all under settings.api_prefix, except /health):
    - users.py:          /users         login, profile, search, quota readout
    - admin.py:          /admin         account administration, quota top-ups
    - forms.py:          /form          forms, submission, responses, assignment
    - templates.py:      /templates     template catalogue
    - notifications.py:  /notification  inbox
    - health.py:         /health        service health check
    - deps.py:           bearer-token auth dependencies

Routes stay thin: parse the request, call a service, shape the envelope.
"""
