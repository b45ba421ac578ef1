# Routes package init
"""
Memora Backend — API Routes Package
====================================

Route Inventory:
    - auth.py:         POST   /api/auth/register
                       POST   /api/auth/login
    - notes.py:        GET    /api/notes               (paginated, searchable)
                       POST   /api/notes
                       GET    /api/notes/{id}          (with attachment metadata)
                       PUT    /api/notes/{id}
                       DELETE /api/notes/{id}
    - attachments.py:  POST   /api/notes/{id}/attachments
                       GET    /api/attachments/{id}
                       GET    /api/attachments/{id}/download
                       DELETE /api/attachments/{id}
    - health.py:       GET    /health

Design Principle:
    Routes are thin. They extract request data, resolve the caller through
    `get_current_user_id`, call one service, and pick the status code.
    Errors are raised as MemoraError subclasses and rendered by the global
    handler in main.py.
"""
