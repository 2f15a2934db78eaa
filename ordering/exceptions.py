"""
Domain exceptions

Every error carries a stable machine-readable ``code`` and a ``kind``
that the API layer maps onto an HTTP status.
"""


class OrderingError(Exception):
    """Base exception for ordering errors"""
    kind = "internal_error"
    code = "ordering_error"
    default_message = "Ordering error"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ---------------------------------------------------------------- kinds

class ValidationError(OrderingError):
    """Missing or invalid input"""
    kind = "validation_error"
    code = "validation_error"
    default_message = "Invalid input"


class NotFoundError(OrderingError):
    """Referenced entity does not exist"""
    kind = "not_found"
    code = "not_found"
    default_message = "Not found"


class AuthorizationError(OrderingError):
    """Caller may not perform this operation"""
    kind = "authorization_error"
    code = "forbidden"
    default_message = "You are not allowed to perform this operation"


class BusinessRuleViolation(OrderingError):
    """Request is well formed but breaks a business rule"""
    kind = "business_rule_violation"
    code = "business_rule_violation"
    default_message = "Business rule violation"


class DependencyFailure(OrderingError):
    """An external collaborator failed or timed out"""
    kind = "dependency_failure"
    code = "dependency_failure"
    default_message = "External dependency failure"


# ---------------------------------------------------------------- orders

class EmptyCart(ValidationError):
    code = "empty_cart"
    default_message = "The order must contain at least one item"


class MissingDeliveryAddress(ValidationError):
    code = "missing_delivery_address"
    default_message = "A delivery address is required for delivery orders"


class InvalidPaymentMethod(ValidationError):
    code = "invalid_payment_method"
    default_message = "Invalid payment method"


class ItemNotFound(NotFoundError):
    code = "item_not_found"
    default_message = "One or more plates were not found"


class OrderNotFound(NotFoundError):
    code = "order_not_found"
    default_message = "Order not found"


class InvalidStatusTransition(BusinessRuleViolation):
    code = "invalid_status_transition"

    def __init__(self, current: str, target: str):
        self.current = current
        self.target = target
        super().__init__(f"Cannot move order from '{current}' to '{target}'")


class OrderNotCancellable(BusinessRuleViolation):
    code = "order_not_cancellable"
    default_message = "The order cannot be cancelled in its current status"


class PaymentAlreadyConfirmed(BusinessRuleViolation):
    code = "payment_already_confirmed"
    default_message = "Payment has already been confirmed"


class PaymentCodeGenerationFailed(DependencyFailure):
    code = "payment_code_generation_failed"
    default_message = "Could not generate the Pix payment code"


class CatalogUnavailable(DependencyFailure):
    code = "catalog_unavailable"
    default_message = "Menu service unavailable"


# ---------------------------------------------------------------- coupons

class CouponNotFound(NotFoundError):
    code = "coupon_not_found"
    default_message = "Invalid or inactive coupon"


class CouponAlreadyExists(BusinessRuleViolation):
    code = "coupon_already_exists"
    default_message = "A coupon with this code already exists"


class CouponNotYetValid(BusinessRuleViolation):
    code = "coupon_not_yet_valid"
    default_message = "Coupon is not valid yet"


class CouponExpired(BusinessRuleViolation):
    code = "coupon_expired"
    default_message = "Coupon has expired"


class MinimumOrderValueNotMet(BusinessRuleViolation):
    code = "minimum_order_value_not_met"
    default_message = "Order value is below the coupon minimum"


class CouponUsageLimitReached(BusinessRuleViolation):
    code = "coupon_usage_limit_reached"
    default_message = "Coupon has reached its usage limit"


class CouponUserLimitReached(BusinessRuleViolation):
    code = "coupon_user_limit_reached"
    default_message = "You have already used this coupon the maximum number of times"


# ---------------------------------------------------------------- loyalty

class InsufficientPoints(BusinessRuleViolation):
    code = "insufficient_points"
    default_message = "Insufficient loyalty points"
