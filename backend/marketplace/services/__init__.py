"""
Marketplace Backend: Services Layer
===================================

Business rules between the HTTP routes and the database. Each service is
stateless, receives the request's AsyncSession, and is exposed as a module
level singleton (e.g. `project_service`).

Service Inventory:
    - UserService:     user rows, first-sign-in provisioning, avatars
    - ProfileService:  profile upsert and lookup
    - ProjectService:  project board queries and owner edits
    - InterestService: developer proposals and owner decisions
    - MessageService:  per-project conversations
    - FileService:     avatar validation and object storage
"""
