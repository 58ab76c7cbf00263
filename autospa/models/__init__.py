# autospa/models/__init__.py
from .base import Base
from .business_setting import BusinessSetting
from .employee import Employee, EmployeeSchedule, BlockedDate
from .customer import Customer
from .service import Service
from .appointment import Appointment
from .coupon import Coupon, CouponReward
from .webhook_endpoint import WebhookEndpoint
from .webhook_event import WebhookEvent

__all__ = [
    "Base",
    "BusinessSetting",
    "Employee",
    "EmployeeSchedule",
    "BlockedDate",
    "Customer",
    "Service",
    "Appointment",
    "Coupon",
    "CouponReward",
    "WebhookEndpoint",
    "WebhookEvent",
]
