"""
auth — User authentication module.

Provides:
  • Access / refresh JWT creation & verification
  • Password hashing (bcrypt)
  • Register / Login / Refresh / Profile / Logout API routes
  • ``get_current_identity`` FastAPI dependency
"""
