"""initial schema

Revision ID: 0001
Revises:
Create Date: 2024-08-20 10:00:00

"""
from alembic import op
import sqlalchemy as sa


revision = '0001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'providers',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
    )
    op.create_index('ix_providers_id', 'providers', ['id'])

    op.create_table(
        'clients',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False, unique=True),
        sa.Column('phone_number', sa.String(), nullable=True),
    )
    op.create_index('ix_clients_id', 'clients', ['id'])

    op.create_table(
        'availability_windows',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('provider_id', sa.Integer(), sa.ForeignKey('providers.id'), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint('start_time < end_time', name='ck_availability_windows_range'),
    )
    op.create_index('ix_availability_windows_id', 'availability_windows', ['id'])

    op.create_table(
        'slots',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('provider_id', sa.Integer(), sa.ForeignKey('providers.id'), nullable=False),
        sa.Column('start_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('end_time', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.Column('reservation_id', sa.Integer(), nullable=True),
        sa.CheckConstraint('start_time < end_time', name='ck_slots_range'),
        sa.CheckConstraint("status IN ('available', 'reserved', 'confirmed')", name='ck_slots_status'),
    )
    op.create_index('ix_slots_id', 'slots', ['id'])
    op.create_index('idx_slots_provider_status_start', 'slots', ['provider_id', 'status', 'start_time'])

    op.create_table(
        'reservations',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('slot_id', sa.Integer(), sa.ForeignKey('slots.id'), nullable=False),
        sa.Column('client_id', sa.Integer(), sa.ForeignKey('clients.id'), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('ix_reservations_id', 'reservations', ['id'])
    op.create_index('idx_reservations_pending_expiry', 'reservations', ['confirmed_at', 'expires_at'])

    # slots <-> reservations reference each other, so this side is added last
    op.create_foreign_key('fk_slots_reservation_id', 'slots', 'reservations', ['reservation_id'], ['id'])


def downgrade():
    op.drop_constraint('fk_slots_reservation_id', 'slots', type_='foreignkey')
    op.drop_table('reservations')
    op.drop_table('slots')
    op.drop_table('availability_windows')
    op.drop_table('clients')
    op.drop_table('providers')
