# Import models here so Alembic can discover metadata.
from cowork.models.tenant import Tenant  # noqa: F401
from cowork.models.user import User  # noqa: F401
from cowork.models.invitation import Invitation  # noqa: F401

# Tenant-owned resources (RLS protected)
from cowork.models.client import Client  # noqa: F401
from cowork.models.lead import Lead  # noqa: F401
from cowork.models.opportunity import Opportunity  # noqa: F401
from cowork.models.quotation import Quotation  # noqa: F401
from cowork.models.quotation_item import QuotationItem  # noqa: F401
from cowork.models.space import Space  # noqa: F401
from cowork.models.service import Service  # noqa: F401
from cowork.models.booking import Booking  # noqa: F401
from cowork.models.access_log import AccessLog  # noqa: F401
from cowork.models.invoice import Invoice  # noqa: F401
from cowork.models.membership import Membership  # noqa: F401
from cowork.models.activity import Activity  # noqa: F401
