# app/models/__init__.py
from app.db.base import Base  # noqa: F401

# order matters due to FKs
from . import identity        # noqa: F401
from . import studio          # noqa: F401
from . import user_profile    # noqa: F401
from . import invitation      # noqa: F401
from . import template        # noqa: F401
from . import form            # noqa: F401
from . import archived_pdf    # noqa: F401
from . import audit_log       # noqa: F401
