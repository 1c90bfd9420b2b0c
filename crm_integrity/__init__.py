"""Data-integrity maintenance for multi-tenant CRM workspaces."""
