from .associations import user_roles, event_categories
from .users.models import User, Role
from .organizers.models import PayoutAccount
from .events.models import Event, Category
from .ticketing.models import Ticket
from .coupons.models import Coupon, UserCoupon
from .payments.models import Payment, Payout
from .purchases.models import Purchase

__all__ = (
    "user_roles", "event_categories", "User", "Role", "PayoutAccount", "Event", "Category", "Ticket", "Coupon",
    "UserCoupon", "Payment", "Payout", "Purchase"
)
