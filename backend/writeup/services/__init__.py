# Services package init
"""
WriteUp Backend: Services Layer
===============================

What:  Business logic between the routes (HTTP) and the adapters/database.

Service Inventory (leaf first):
    - providers/:           One adapter per AI backend
    - config_store:         Persisted ProviderDescriptors (DB or in-memory)
    - registry:             Name → adapter, applies saved config
    - orchestrator:         Priority-ordered provider fallback (the core)
    - privacy:              Sensitive-data check and excluded-app list
    - enhancement_service:  Validation + privacy + orchestration for /api/enhance
    - chat_service:         Chat config, prompt building, context trimming
    - history_service:      Enhancement history persistence

Each module exposes a singleton wired to the real dependencies; the classes
take their collaborators as constructor arguments so tests can swap them.
"""
