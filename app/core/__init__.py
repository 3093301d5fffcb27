"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks shared by the domain apps
(listings, billing, notifications). No domain logic lives here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - OrderableMixin: User-defined ordering (position field)
    - VersionedMixin: Optimistic locking version column

Services (import from core.services):
    - BaseService: Logger and transaction helpers for service classes

Exceptions (import from core.exceptions):
    - BaseApplicationError and its HTTP-mapped subclasses

Views (import from core.views):
    - health_check: Liveness/readiness endpoint
    - error_response: Domain error to DRF Response translation
"""
