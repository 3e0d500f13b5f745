"""Identity (login account) provisioning for migrated users."""

from tankersync.identity.in_memory import InMemoryIdentityService
from tankersync.identity.interface import IdentityService
from tankersync.identity.provisioner import IdentityProvisioner, ProvisionResult
from tankersync.identity.supabase import SupabaseIdentityService

__all__ = [
    "IdentityService",
    "InMemoryIdentityService",
    "SupabaseIdentityService",
    "IdentityProvisioner",
    "ProvisionResult",
]
