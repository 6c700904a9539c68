"""ConfirmCouponUsage: consume one use of a coupon outside the order flow."""

from protean import handle
from protean.fields import String
from protean.utils.globals import current_domain

from storefront.coupon.coupon import Coupon
from storefront.domain import storefront


@storefront.command(part_of="Coupon")
class ConfirmCouponUsage:
    code = String(required=True, max_length=50)


@storefront.command_handler(part_of=Coupon)
class ConfirmCouponUsageHandler:
    @handle(ConfirmCouponUsage)
    def confirm_usage(self, command):
        return current_domain.repository_for(Coupon).redeem(command.code)
