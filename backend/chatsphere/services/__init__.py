# Services package init
"""
ChatSphere Backend: Services Layer
==================================

What:  Business rules between the route handlers (HTTP) and the database.
How:   Each service is a class with a module-level singleton. Methods take
       an AsyncSession plus plain values and raise ChatSphereError
       subclasses, which the global handlers turn into error envelopes.

Service Inventory:
    - AuthService: register, login, logout
    - UserService: profile, avatar, password, account deletion
    - ContactService: request lifecycle, contact list, user search
    - MessageService: direct messages, conversations, unread counters
    - ImageHostService (abstract) / CloudinaryService: avatar hosting
    - FileService: avatar validation and local staging
"""
