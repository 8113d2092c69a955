"""initial trip seat schema

Revision ID: 4f2c9a1d7e3b
Revises: 
Create Date: 2026-10-19 09:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '4f2c9a1d7e3b'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create trips table
    op.create_table(
        'trips',
        sa.Column('trip_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('driver_name', sa.String(length=150), nullable=True),
        sa.Column('vehicle_layout', sa.String(length=50), nullable=False, server_default='sprinter_15'),
        sa.Column('custom_seat_ids', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(length=9), nullable=False, server_default='planned'),
        sa.Column('whatsapp_group_link', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('trip_id'),
        sqlite_autoincrement=True
    )
    op.create_index('ix_trips_trip_id', 'trips', ['trip_id'])
    op.create_index('ix_trips_date', 'trips', ['date'])
    op.create_index('ix_trips_status', 'trips', ['status'])

    # Create registrations table; trip_id deliberately has no FK
    op.create_table(
        'registrations',
        sa.Column('registration_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('trip_id', sa.Integer(), nullable=False),
        sa.Column('booking_group_id', sa.String(length=36), nullable=True),
        sa.Column('first_name', sa.String(length=100), nullable=False),
        sa.Column('last_name', sa.String(length=100), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('phone', sa.String(length=50), nullable=False),
        sa.Column('seat_number', sa.Integer(), nullable=False),
        sa.Column('is_multi_seat', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('seat_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('payment_method', sa.String(length=7), nullable=False, server_default='on-trip'),
        sa.Column('paid', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('signature_data', sa.Text(), nullable=True),
        sa.Column('agreed_to_cancellation_policy', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('agreed_to_waiver', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('added_by_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('registration_date', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('registration_id'),
        sa.UniqueConstraint('trip_id', 'seat_number', name='uq_registration_trip_seat')
    )
    op.create_index('ix_registrations_registration_id', 'registrations', ['registration_id'])
    op.create_index('ix_registrations_trip_id', 'registrations', ['trip_id'])
    op.create_index('ix_registrations_booking_group_id', 'registrations', ['booking_group_id'])

    # Create gift_cards table
    op.create_table(
        'gift_cards',
        sa.Column('gift_card_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('barcode_id', sa.String(length=32), nullable=False),
        sa.Column('recipient_name', sa.String(length=150), nullable=False),
        sa.Column('recipient_email', sa.String(length=255), nullable=True),
        sa.Column('sender_name', sa.String(length=150), nullable=False),
        sa.Column('sender_email', sa.String(length=255), nullable=True),
        sa.Column('message', sa.Text(), nullable=True),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('remaining_balance_cents', sa.Integer(), nullable=True),
        sa.Column('expiry_date', sa.DateTime(), nullable=False),
        sa.Column('redeemed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('redeemed_at', sa.DateTime(), nullable=True),
        sa.Column('source', sa.String(length=8), nullable=False, server_default='admin'),
        sa.Column('payment_method', sa.String(length=20), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('gift_card_id'),
        sa.CheckConstraint('amount_cents > 0', name='ck_gift_card_amount_positive'),
        sa.CheckConstraint(
            'remaining_balance_cents IS NULL OR '
            '(remaining_balance_cents >= 0 AND remaining_balance_cents <= amount_cents)',
            name='ck_gift_card_balance_range'
        )
    )
    op.create_index('ix_gift_cards_gift_card_id', 'gift_cards', ['gift_card_id'])
    op.create_index('ix_gift_cards_barcode_id', 'gift_cards', ['barcode_id'], unique=True)

    # Create gift_card_usages table
    op.create_table(
        'gift_card_usages',
        sa.Column('usage_id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('gift_card_id', sa.Integer(), nullable=False),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('date', sa.DateTime(), nullable=False),
        sa.Column('trip_name', sa.String(length=200), nullable=False),
        sa.Column('number_of_people', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('amount_used_cents', sa.Integer(), nullable=False),
        sa.Column('remaining_after_cents', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('used_at', sa.DateTime(), nullable=False, server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.PrimaryKeyConstraint('usage_id'),
        sa.ForeignKeyConstraint(['gift_card_id'], ['gift_cards.gift_card_id'], ondelete='CASCADE'),
        sa.UniqueConstraint('gift_card_id', 'sequence', name='uq_gift_card_usage_sequence'),
        sa.CheckConstraint('amount_used_cents > 0', name='ck_gift_card_usage_amount_positive'),
        sa.CheckConstraint('remaining_after_cents >= 0', name='ck_gift_card_usage_remaining')
    )
    op.create_index('ix_gift_card_usages_usage_id', 'gift_card_usages', ['usage_id'])
    op.create_index('ix_gift_card_usages_gift_card_id', 'gift_card_usages', ['gift_card_id'])


def downgrade() -> None:
    op.drop_index('ix_gift_card_usages_gift_card_id', table_name='gift_card_usages')
    op.drop_index('ix_gift_card_usages_usage_id', table_name='gift_card_usages')
    op.drop_table('gift_card_usages')

    op.drop_index('ix_gift_cards_barcode_id', table_name='gift_cards')
    op.drop_index('ix_gift_cards_gift_card_id', table_name='gift_cards')
    op.drop_table('gift_cards')

    op.drop_index('ix_registrations_booking_group_id', table_name='registrations')
    op.drop_index('ix_registrations_trip_id', table_name='registrations')
    op.drop_index('ix_registrations_registration_id', table_name='registrations')
    op.drop_table('registrations')

    op.drop_index('ix_trips_status', table_name='trips')
    op.drop_index('ix_trips_date', table_name='trips')
    op.drop_index('ix_trips_trip_id', table_name='trips')
    op.drop_table('trips')
