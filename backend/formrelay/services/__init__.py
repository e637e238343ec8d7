# Services package init
"""
FormRelay Backend — Services Layer
====================================

Service Inventory:
    - SubmissionService: quota-gated single and bulk response admission
    - NotificationDirectory: live Socket.IO sessions per account (in memory)
    - NotificationService: persist-then-push dispatcher and the inbox
    - AssignmentService: form assignment with FORM_ASSIGNED notifications
    - FormService: form CRUD, responses, favorites, share links
    - TemplateService: template catalogue
    - UserService: login, profile, search, bootstrap admin
    - AdminService: activation codes, accounts, quota top-ups, roles

Each module exposes a stateless singleton (e.g. `submission_service`);
the database session is passed into every call.
"""
