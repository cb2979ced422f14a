# Services package init
"""
Newsletter Backend: Services Layer
==================================

What:  Business logic between routes (HTTP) and the database (persistence).
How:   Services receive the request's session and collaborators as arguments
       and raise application exceptions; routes stay thin.

Service Inventory:
    - EmailClient: Outbound email HTTP API client
    - AuthService: Password hashing and credential validation
    - SubscriptionService: Subscribe and confirm workflows
    - NewsletterService: Deliver an issue to confirmed subscribers
"""
