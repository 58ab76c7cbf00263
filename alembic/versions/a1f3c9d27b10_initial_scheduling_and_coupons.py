"""initial scheduling and coupons schema

Revision ID: a1f3c9d27b10
Revises:
Create Date: 2026-10-19 09:12:44.318201

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a1f3c9d27b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _clock(column):
    return f"make_time(split_part({column}, ':', 1)::int, split_part({column}, ':', 2)::int, 0)"


NO_OVERLAP_DDL = f"""
    ALTER TABLE appointments
    ADD CONSTRAINT ex_appointments_no_overlap
    EXCLUDE USING gist (
        tsrange(
            scheduled_date + {_clock('scheduled_start_time')},
            scheduled_date + {_clock('scheduled_end_time')}
        ) WITH &&
    )
    WHERE (status <> 'cancelled')
"""


def _uuid_pk():
    return sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()'))


def upgrade() -> None:
    """Upgrade schema."""

    # 1. business_settings
    op.create_table(
        'business_settings',
        sa.Column('key', sa.String(100), primary_key=True),
        sa.Column('value', sa.JSON, nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )

    # 2. employees + schedules + blocked dates
    op.create_table(
        'employees',
        _uuid_pk(),
        sa.Column('first_name', sa.String(100), nullable=False),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('email', sa.String(255), nullable=True, unique=True),
        sa.Column('role', sa.String(20), nullable=False, server_default='detailer'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('bookable_for_appointments', sa.Boolean, server_default=sa.true()),
        sa.Column('permission_overrides', sa.JSON, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )

    op.create_table(
        'employee_schedules',
        _uuid_pk(),
        sa.Column('employee_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer, nullable=False),
        sa.Column('start_time', sa.String(8), nullable=False),
        sa.Column('end_time', sa.String(8), nullable=False),
        sa.Column('is_available', sa.Boolean, server_default=sa.true()),
        sa.UniqueConstraint('employee_id', 'day_of_week', name='uq_employee_schedules_employee_day'),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_employee_schedules_day_of_week')
    )
    op.create_index('ix_employee_schedules_employee_id', 'employee_schedules', ['employee_id'])

    op.create_table(
        'blocked_dates',
        _uuid_pk(),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('employee_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('employees.id', ondelete='CASCADE'), nullable=True),
        sa.Column('reason', sa.String(255), nullable=True)
    )
    op.create_index('ix_blocked_dates_date', 'blocked_dates', ['date'])

    # 3. customers + services
    op.create_table(
        'customers',
        _uuid_pk(),
        sa.Column('first_name', sa.String(100), nullable=True),
        sa.Column('last_name', sa.String(100), nullable=True),
        sa.Column('phone', sa.String(20), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('tags', sa.JSON, nullable=True),
        sa.Column('customer_type', sa.String(20), nullable=True),
        sa.Column('visit_count', sa.Integer, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )
    op.create_index('ix_customers_phone', 'customers', ['phone'])

    op.create_table(
        'services',
        _uuid_pk(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=True),
        sa.Column('base_duration_minutes', sa.Integer, nullable=True),
        sa.Column('category_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )
    op.create_index('ix_services_category_id', 'services', ['category_id'])
    op.create_index('ix_services_is_active', 'services', ['is_active'])

    # 4. appointments
    op.create_table(
        'appointments',
        _uuid_pk(),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('employee_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('employees.id'), nullable=True),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('services.id'), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('channel', sa.String(20), nullable=False, server_default='phone'),
        sa.Column('scheduled_date', sa.Date, nullable=False),
        sa.Column('scheduled_start_time', sa.String(5), nullable=False),
        sa.Column('scheduled_end_time', sa.String(5), nullable=False),
        sa.Column('job_notes', sa.Text, nullable=True),
        sa.Column('internal_notes', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancellation_reason', sa.Text, nullable=True),
        sa.CheckConstraint('scheduled_start_time < scheduled_end_time', name='ck_appointments_start_before_end')
    )
    op.create_index('ix_appointments_date_status', 'appointments', ['scheduled_date', 'status'])

    # Store-level backstop for the application overlap check: no two live
    # appointments may share any minute of the same day. Index expressions
    # must be immutable and text::time is only stable, so the HH:MM columns
    # are rebuilt with make_time.
    op.execute(NO_OVERLAP_DDL)

    # 5. coupons + rewards
    op.create_table(
        'coupons',
        _uuid_pk(),
        sa.Column('code', sa.String(50), nullable=False, unique=True),
        sa.Column('name', sa.String(200), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='draft'),
        sa.Column('auto_apply', sa.Boolean, server_default=sa.false()),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('customer_tags', sa.JSON, nullable=True),
        sa.Column('tag_match_mode', sa.String(10), server_default='any'),
        sa.Column('target_customer_type', sa.String(20), nullable=True),
        sa.Column('condition_logic', sa.String(10), server_default='and'),
        sa.Column('requires_product_ids', sa.JSON, nullable=True),
        sa.Column('requires_service_ids', sa.JSON, nullable=True),
        sa.Column('requires_product_category_ids', sa.JSON, nullable=True),
        sa.Column('requires_service_category_ids', sa.JSON, nullable=True),
        sa.Column('min_purchase', sa.Numeric(10, 2), nullable=True),
        sa.Column('max_customer_visits', sa.Integer, nullable=True),
        sa.Column('is_single_use', sa.Boolean, server_default=sa.false()),
        sa.Column('max_uses', sa.Integer, nullable=True),
        sa.Column('use_count', sa.Integer, server_default='0'),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('campaign_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )
    op.create_index('ix_coupons_status', 'coupons', ['status'])

    op.create_table(
        'coupon_rewards',
        _uuid_pk(),
        sa.Column('coupon_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('coupons.id', ondelete='CASCADE'), nullable=False),
        sa.Column('applies_to', sa.String(20), nullable=False, server_default='order'),
        sa.Column('discount_type', sa.String(20), nullable=False),
        sa.Column('discount_value', sa.Numeric(10, 2), server_default='0'),
        sa.Column('max_discount', sa.Numeric(10, 2), nullable=True),
        sa.Column('target_product_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('target_service_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('target_product_category_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('target_service_category_id', postgresql.UUID(as_uuid=True), nullable=True)
    )
    op.create_index('ix_coupon_rewards_coupon_id', 'coupon_rewards', ['coupon_id'])

    # 6. webhooks
    op.create_table(
        'webhook_endpoints',
        _uuid_pk(),
        sa.Column('url', sa.String(500), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('enabled_events', sa.JSON, nullable=True),
        sa.Column('secret', sa.String(128), nullable=False),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        sa.Column('consecutive_failures', sa.Integer, server_default='0'),
        sa.Column('last_success_at', sa.DateTime(timezone=True)),
        sa.Column('last_failure_at', sa.DateTime(timezone=True)),
        sa.Column('last_failure_reason', sa.String(500)),
        sa.Column('max_consecutive_failures', sa.Integer, server_default='10'),
        sa.Column('auto_disabled_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )
    op.create_index('ix_webhook_endpoints_is_active', 'webhook_endpoints', ['is_active'])

    op.create_table(
        'webhook_events',
        _uuid_pk(),
        sa.Column('webhook_endpoint_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('webhook_endpoints.id'), nullable=False),
        sa.Column('event_type', sa.String(50), nullable=False),
        sa.Column('event_data', sa.JSON, nullable=False),
        sa.Column('domain_event_id', sa.String(64), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('attempts', sa.Integer, server_default='0'),
        sa.Column('max_attempts', sa.Integer, server_default='5'),
        sa.Column('response_status_code', sa.Integer),
        sa.Column('response_body', sa.Text),
        sa.Column('response_time_ms', sa.Integer),
        sa.Column('error_message', sa.Text),
        sa.Column('last_attempt_at', sa.DateTime(timezone=True)),
        sa.Column('next_retry_at', sa.DateTime(timezone=True)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('delivered_at', sa.DateTime(timezone=True)),
        sa.Column('failed_at', sa.DateTime(timezone=True)),
        sa.UniqueConstraint('webhook_endpoint_id', 'domain_event_id', name='uq_webhook_events_endpoint_domain_event')
    )
    op.create_index('ix_webhook_events_status', 'webhook_events', ['status', 'next_retry_at'])
    op.create_index('ix_webhook_events_endpoint_status', 'webhook_events', ['webhook_endpoint_id', 'status'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('webhook_events')
    op.drop_table('webhook_endpoints')
    op.drop_table('coupon_rewards')
    op.drop_table('coupons')
    op.execute("ALTER TABLE appointments DROP CONSTRAINT IF EXISTS ex_appointments_no_overlap")
    op.drop_table('appointments')
    op.drop_table('services')
    op.drop_table('customers')
    op.drop_table('blocked_dates')
    op.drop_table('employee_schedules')
    op.drop_table('employees')
    op.drop_table('business_settings')
