"""ORM models; importing this package registers every table with Base.metadata."""

from newsletter.models.subscription import Subscription, SubscriptionStatus, SubscriptionToken
from newsletter.models.user import User

__all__ = ["Subscription", "SubscriptionStatus", "SubscriptionToken", "User"]
