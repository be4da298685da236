"""Tenant Vault Meta information.
   Tenant Vault encrypts sensitive record fields under per-tenant derived keys.
"""
__title__ = 'tenant_vault'
__description__ = (
   'Tenant Vault encrypts sensitive record fields '
   'under per-tenant derived keys.'
)
__version__ = '0.3.0'
__license__ = 'Apache-2.0'
