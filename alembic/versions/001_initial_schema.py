"""001 Initial schema - customers, bookings, webhook_events

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-18

Unique constraints on customers.email and bookings.fareharbor_id are what
the ON CONFLICT upserts resolve against.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'customers',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_customers_email', 'customers', ['email'], unique=True)

    op.create_table(
        'bookings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('fareharbor_id', sa.String(255), nullable=False, unique=True),
        sa.Column('customer_id', sa.String(36),
                  sa.ForeignKey('customers.id', ondelete='SET NULL'), nullable=True),
        sa.Column('customer_email', sa.String(255), nullable=True),
        sa.Column('customer_name', sa.String(255), nullable=True),
        sa.Column('tour_name', sa.String(500), nullable=True),
        sa.Column('tour_date', sa.DateTime(), nullable=True),
        sa.Column('passenger_count', sa.Integer(), nullable=False, server_default='1'),
        sa.Column('amount', sa.Numeric(10, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(50), nullable=False, server_default='confirmed'),
        sa.Column('booking_source', sa.String(100), nullable=True, server_default='fareharbor'),
        sa.Column('special_requests', sa.Text(), nullable=True),
        sa.Column('raw_data', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
        sa.Column('updated_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_booking_customer_email', 'bookings', ['customer_email'])
    op.create_index('ix_booking_status', 'bookings', ['status'])
    op.create_index('ix_booking_created_at', 'bookings', ['created_at'])

    op.create_table(
        'webhook_events',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('event_type', sa.String(100), nullable=True),
        sa.Column('fareharbor_id', sa.String(255), nullable=True),
        sa.Column('payload', sa.JSON(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('request_id', sa.String(64), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=True),
    )
    op.create_index('ix_webhook_events_fareharbor_id', 'webhook_events', ['fareharbor_id'])
    op.create_index('ix_webhook_events_status', 'webhook_events', ['status', 'created_at'])


def downgrade():
    op.drop_index('ix_webhook_events_status', table_name='webhook_events')
    op.drop_index('ix_webhook_events_fareharbor_id', table_name='webhook_events')
    op.drop_table('webhook_events')

    op.drop_index('ix_booking_created_at', table_name='bookings')
    op.drop_index('ix_booking_status', table_name='bookings')
    op.drop_index('ix_booking_customer_email', table_name='bookings')
    op.drop_table('bookings')

    op.drop_index('ix_customers_email', table_name='customers')
    op.drop_table('customers')
