"""
Pagecraft — Backend for a Template-Based Website Builder
==========================================================
Users create projects from shared templates, edit their HTML/CSS/JS,
publish snapshots for the public gallery, and like templates from the
community library.

Package layout::

    pagecraft/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Shared defaults and display maps
    ├── errors.py          # Typed error taxonomy (→ HTTP status)
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # All ORM models (8 tables)
    ├── services/
    │   ├── audit_service.py       # Activity + ProjectLog recorder
    │   ├── project_service.py     # Project lifecycle (publish/unpublish/delete)
    │   ├── publication_service.py # Public gallery reads
    │   ├── template_service.py    # Template library CRUD + counters
    │   ├── like_service.py        # Per-user like toggle
    │   └── file_service.py        # Owner-scoped file listing
    └── api/
        ├── main.py        # FastAPI app
        ├── deps.py        # JWT gate, engine/session dependencies
        ├── errors.py      # Error → JSON response translation
        └── routes/        # REST endpoints
"""

__version__ = "0.1.0"
