from sqlalchemy.orm import declarative_base

Base = declarative_base()

# --------------------------------------------------
# Admin & ruoli
# --------------------------------------------------
from .roles import Role  # noqa: F401
from .admin import Admin  # noqa: F401

# --------------------------------------------------
# Sessioni & audit
# --------------------------------------------------
from .admin_sessions import AdminSession  # noqa: F401
from .activity_logs import ActivityLog  # noqa: F401
