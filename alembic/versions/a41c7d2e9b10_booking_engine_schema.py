"""booking engine schema

Revision ID: a41c7d2e9b10
Revises:
Create Date: 2026-10-19 10:12:44.501233

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = 'a41c7d2e9b10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""

    # 1. Shops
    op.create_table(
        'shops',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('timezone', sa.String(64), nullable=False, server_default='UTC'),
        sa.Column('address', sa.Text, nullable=True),
        sa.Column('phone', sa.String(32), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )

    # 2. Weekly schedule blocks and date exceptions
    op.create_table(
        'schedule_blocks',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id', ondelete='CASCADE'), nullable=False),
        sa.Column('day_of_week', sa.Integer, nullable=False),
        sa.Column('open_time', sa.Time, nullable=False),
        sa.Column('close_time', sa.Time, nullable=False),
        sa.Column('block_order', sa.Integer, nullable=False, server_default='0'),
        sa.CheckConstraint('day_of_week BETWEEN 0 AND 6', name='ck_schedule_blocks_day_of_week'),
        sa.UniqueConstraint('shop_id', 'day_of_week', 'block_order', name='uq_schedule_blocks_order')
    )
    op.create_index('ix_schedule_blocks_shop_id', 'schedule_blocks', ['shop_id'])

    op.create_table(
        'schedule_exceptions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id', ondelete='CASCADE'), nullable=False),
        sa.Column('exception_date', sa.Date, nullable=False),
        sa.Column('is_closed', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('open_time', sa.Time, nullable=True),
        sa.Column('close_time', sa.Time, nullable=True),
        sa.Column('reason', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('shop_id', 'exception_date', name='uq_schedule_exceptions_date')
    )
    op.create_index('ix_schedule_exceptions_shop_id', 'schedule_exceptions', ['shop_id'])

    # 3. Services and modifiers
    op.create_table(
        'services',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('price', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('duration_minutes', sa.Integer, nullable=False),
        sa.Column('is_active', sa.Boolean, server_default=sa.text('true')),
        sa.Column('display_order', sa.Integer, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.CheckConstraint('duration_minutes > 0', name='ck_services_duration_positive'),
        sa.CheckConstraint('price >= 0', name='ck_services_price_non_negative')
    )
    op.create_index('ix_services_shop_id', 'services', ['shop_id'])
    op.create_index('ix_services_is_active', 'services', ['is_active'])

    op.create_table(
        'service_modifiers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('services.id', ondelete='CASCADE'), nullable=False),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('condition_type', sa.String(32), nullable=False, server_default='manual'),
        sa.Column('condition_value', sa.JSON, nullable=True),
        sa.Column('duration_modifier', sa.Integer, nullable=False, server_default='0'),
        sa.Column('price_modifier', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('auto_apply', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.CheckConstraint(
            "condition_type IN ('manual', 'customer_tag', 'age_range', 'first_visit')",
            name='ck_service_modifiers_condition_type'
        )
    )
    op.create_index('ix_service_modifiers_service_id', 'service_modifiers', ['service_id'])

    # 4. Customers
    op.create_table(
        'customers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('email', sa.String(255), nullable=False, unique=True),
        sa.Column('full_name', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(32), nullable=True),
        sa.Column('birth_date', sa.Date, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )

    op.create_table(
        'customer_tags',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('customers.id', ondelete='CASCADE'), nullable=False),
        sa.Column('tag', sa.String(100), nullable=False),
        sa.Column('value', sa.String(255), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.UniqueConstraint('customer_id', 'tag', name='uq_customer_tags_customer_tag')
    )
    op.create_index('ix_customer_tags_customer_id', 'customer_tags', ['customer_id'])

    op.create_table(
        'contact_verifications',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('code', sa.String(6), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('verified_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('token', sa.String(64), nullable=True, unique=True),
        sa.Column('token_expires_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('used_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False)
    )
    op.create_index('ix_contact_verifications_email', 'contact_verifications', ['email'])

    # 5. Booking links
    op.create_table(
        'booking_links',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id', ondelete='CASCADE'), nullable=False),
        sa.Column('token', sa.String(64), nullable=False, unique=True),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.text('true')),
        sa.Column('max_uses', sa.Integer, nullable=True),
        sa.Column('current_uses', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('max_uses IS NULL OR current_uses <= max_uses', name='ck_booking_links_uses')
    )
    op.create_index('ix_booking_links_shop_id', 'booking_links', ['shop_id'])

    # 6. Bookings and their line items
    op.create_table(
        'bookings',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id'), nullable=False),
        sa.Column('customer_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('customers.id'), nullable=True),
        sa.Column('booking_link_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('booking_links.id'), nullable=True),
        sa.Column('booking_date', sa.Date, nullable=False),
        sa.Column('start_time', sa.Time, nullable=False),
        sa.Column('end_time', sa.Time, nullable=False),
        sa.Column('starts_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('ends_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('total_duration', sa.Integer, nullable=False),
        sa.Column('total_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('status', sa.String(16), nullable=False, server_default='pending'),
        sa.Column('customer_name', sa.String(200), nullable=False),
        sa.Column('customer_email', sa.String(255), nullable=False),
        sa.Column('customer_phone', sa.String(32), nullable=True),
        sa.Column('notes', sa.Text, nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()')),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('pending', 'confirmed', 'cancelled')", name='ck_bookings_status')
    )
    op.create_index('idx_bookings_shop_date', 'bookings', ['shop_id', 'booking_date'])
    op.create_index('ix_bookings_customer_id', 'bookings', ['customer_id'])
    op.create_index('ix_bookings_status', 'bookings', ['status'])
    op.create_index(
        'uq_bookings_shop_date_start_active',
        'bookings',
        ['shop_id', 'booking_date', 'start_time'],
        unique=True,
        postgresql_where=sa.text("status <> 'cancelled'")
    )

    op.create_table(
        'booking_services',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('service_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('services.id'), nullable=False),
        sa.Column('position', sa.Integer, nullable=False, server_default='0'),
        sa.Column('service_name', sa.String(200), nullable=False),
        sa.Column('price_at_booking', sa.Numeric(10, 2), nullable=False),
        sa.Column('duration_at_booking', sa.Integer, nullable=False)
    )
    op.create_index('ix_booking_services_booking_id', 'booking_services', ['booking_id'])

    op.create_table(
        'booking_modifiers',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True, server_default=sa.text('gen_random_uuid()')),
        sa.Column('booking_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('bookings.id', ondelete='CASCADE'), nullable=False),
        sa.Column('modifier_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('service_modifiers.id'), nullable=False),
        sa.Column('position', sa.Integer, nullable=False, server_default='0'),
        sa.Column('modifier_name', sa.String(200), nullable=False),
        sa.Column('applied_duration', sa.Integer, nullable=False),
        sa.Column('applied_price', sa.Numeric(10, 2), nullable=False),
        sa.Column('auto_applied', sa.Boolean, nullable=False, server_default=sa.text('false')),
        sa.Column('applied_at', sa.DateTime(timezone=True), server_default=sa.text('now()'))
    )
    op.create_index('ix_booking_modifiers_booking_id', 'booking_modifiers', ['booking_id'])

    # 7. Per (shop, date) lock rows serializing booking creation
    op.create_table(
        'booking_day_locks',
        sa.Column('shop_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('shops.id', ondelete='CASCADE'), nullable=False),
        sa.Column('lock_date', sa.Date, nullable=False),
        sa.Column('version', sa.Integer, nullable=False, server_default='0'),
        sa.PrimaryKeyConstraint('shop_id', 'lock_date', name='pk_booking_day_locks')
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('booking_day_locks')
    op.drop_index('ix_booking_modifiers_booking_id', table_name='booking_modifiers')
    op.drop_table('booking_modifiers')
    op.drop_index('ix_booking_services_booking_id', table_name='booking_services')
    op.drop_table('booking_services')
    op.drop_index('uq_bookings_shop_date_start_active', table_name='bookings')
    op.drop_index('ix_bookings_status', table_name='bookings')
    op.drop_index('ix_bookings_customer_id', table_name='bookings')
    op.drop_index('idx_bookings_shop_date', table_name='bookings')
    op.drop_table('bookings')
    op.drop_index('ix_booking_links_shop_id', table_name='booking_links')
    op.drop_table('booking_links')
    op.drop_index('ix_contact_verifications_email', table_name='contact_verifications')
    op.drop_table('contact_verifications')
    op.drop_index('ix_customer_tags_customer_id', table_name='customer_tags')
    op.drop_table('customer_tags')
    op.drop_table('customers')
    op.drop_index('ix_service_modifiers_service_id', table_name='service_modifiers')
    op.drop_table('service_modifiers')
    op.drop_index('ix_services_is_active', table_name='services')
    op.drop_index('ix_services_shop_id', table_name='services')
    op.drop_table('services')
    op.drop_index('ix_schedule_exceptions_shop_id', table_name='schedule_exceptions')
    op.drop_table('schedule_exceptions')
    op.drop_index('ix_schedule_blocks_shop_id', table_name='schedule_blocks')
    op.drop_table('schedule_blocks')
    op.drop_table('shops')
