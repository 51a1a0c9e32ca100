"""Database models — re-exports all models.

Import from here:  from wedstay.models import Vendor, Product, ...
Or from submodules: from wedstay.models.catalog import Product
"""

from .base import Base  # noqa: F401

# Status & role variants
from .enums import (  # noqa: F401
    InquiryStatus,
    MetricKind,
    OrderStatus,
    ProductStatus,
    ProfileRole,
    VendorStatus,
)

# Identity
from .auth import Profile  # noqa: F401

# Vendors & Catalog
from .vendors import Vendor  # noqa: F401
from .catalog import Product, ProductHandle  # noqa: F401

# Customer pipeline
from .inquiries import Inquiry  # noqa: F401
from .orders import Order  # noqa: F401
from .reviews import Review  # noqa: F401

# Metrics
from .metrics import AnalyticsEvent, MetricEvent  # noqa: F401
