"""
File: opsflow/models/__init__.py
Purpose: Package initializer for the Pydantic models shared by the integration layer, the config
    store and the API routers.
When Used: Imported when any module references 'opsflow.models.schemas'.
Why Created: Keeps data contracts (integrations, credentials, per-service records, config entities)
    separate from adapter and router logic.
"""
# Models
