"""
SQLAlchemy ORM models package.

All models are imported here so that:
  1. Base.metadata describes every table the store owns
  2. Other modules can import from noebs.models directly

The schema itself is created and evolved by the Alembic revisions in
noebs/migrations, not by Base.metadata.create_all().
"""

from noebs.models.tenant import Tenant  # noqa: F401
from noebs.models.user import User  # noqa: F401
from noebs.models.card import Card, CacheCard  # noqa: F401
from noebs.models.token import Token  # noqa: F401
from noebs.models.transaction import Transaction  # noqa: F401
from noebs.models.kyc import KYC, Passport  # noqa: F401
from noebs.models.push_data import PushData  # noqa: F401
from noebs.models.beneficiary import Beneficiary  # noqa: F401
from noebs.models.api_key import APIKey  # noqa: F401
from noebs.models.auth_account import AuthAccount  # noqa: F401
from noebs.models.login_metric import LoginMetric  # noqa: F401
from noebs.models.biller import CacheBiller, MeterName  # noqa: F401
