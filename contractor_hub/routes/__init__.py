"""
Routes package for the Contractor Hub API.

Each module defines one Flask blueprint; BLUEPRINTS lists them with the URL
prefix the app factory mounts them at.
"""

# (module, blueprint variable, url prefix)
BLUEPRINTS = [
    ('auth', 'auth_bp', '/api/auth'),
    ('contacts', 'contacts_bp', '/api/contacts'),
    ('quotes', 'quotes_bp', '/api/quotes'),
    ('quote_items', 'quote_items_bp', '/api/quote-items'),
    ('contracts', 'contracts_bp', '/api/contracts'),
    ('invoices', 'invoices_bp', '/api/invoices'),
    ('jobs', 'jobs_bp', '/api/jobs'),
    ('files', 'files_bp', '/api'),
    ('messages', 'messages_bp', '/api/messages'),
    ('portal', 'portal_bp', '/api/portal'),
    ('email', 'email_bp', '/api'),
    ('health', 'health_bp', '/api'),
]

__all__ = ['BLUEPRINTS']
