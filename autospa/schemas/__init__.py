# autospa/schemas/__init__.py
from .booking import (
    SlotsResponse,
    BookingSubmit,
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentResponse,
    AppointmentListResponse,
)

from .coupons import (
    CartItem,
    PromotionsRequest,
    PromotionItem,
    PromotionsResponse,
    CouponValidateRequest,
    CouponValidateResponse,
)

from .events import (
    DomainEvent,
    DomainEventType,
)

from .settings import (
    DayHoursSchema,
    BusinessHoursConfig,
    BookingConfig,
    BusinessSettingsSnapshot,
    SettingUpdate,
    SettingsListResponse,
)
