"""CRM record models and table services."""
