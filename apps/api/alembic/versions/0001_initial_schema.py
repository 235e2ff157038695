"""initial care home schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSONBag = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'locations',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('address', sa.Text(), nullable=False),
        sa.Column('city', sa.String(), nullable=True),
        sa.Column('timezone', sa.String(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_locations_name'), 'locations', ['name'], unique=False)

    op.create_table(
        'caregivers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('location_id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('phone', sa.String(), nullable=True),
        sa.Column('status', sa.Enum('ACTIVE', 'INACTIVE', 'SUSPENDED', 'TERMINATED', 'ON_LEAVE', name='caregiver_status'), nullable=False),
        sa.Column('consent_history', JSONBag, nullable=False),
        sa.Column('deletion_requested', sa.Boolean(), nullable=False),
        sa.Column('deletion_requested_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deletion_request_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_caregivers_location_id'), 'caregivers', ['location_id'], unique=False)
    op.create_index(op.f('ix_caregivers_email'), 'caregivers', ['email'], unique=True)

    op.create_table(
        'room_beds',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('location_id', sa.Uuid(), nullable=False),
        sa.Column('room_number', sa.String(), nullable=False),
        sa.Column('bed_number', sa.String(), nullable=False),
        sa.Column('is_occupied', sa.Boolean(), nullable=False),
        sa.Column('floor', sa.String(), nullable=True),
        sa.Column('wing', sa.String(), nullable=True),
        sa.Column('features', JSONBag, nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('location_id', 'room_number', 'bed_number', name='uq_room_beds_location_room_bed'),
    )
    op.create_index(op.f('ix_room_beds_location_id'), 'room_beds', ['location_id'], unique=False)
    op.create_index(op.f('ix_room_beds_is_occupied'), 'room_beds', ['is_occupied'], unique=False)

    op.create_table(
        'care_receivers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('location_id', sa.Uuid(), nullable=False),
        sa.Column('first_name', sa.String(), nullable=False),
        sa.Column('last_name', sa.String(), nullable=False),
        sa.Column('date_of_birth', sa.Date(), nullable=True),
        sa.Column(
            'status',
            sa.Enum('ACTIVE', 'DISCHARGED', 'DECEASED', 'TRANSFERRED', name='care_receiver_status'),
            nullable=False,
        ),
        sa.Column('current_room_bed_id', sa.Uuid(), nullable=True),
        sa.Column('admission_date', sa.Date(), nullable=True),
        sa.Column('discharge_date', sa.Date(), nullable=True),
        sa.Column('consent_history', JSONBag, nullable=False),
        sa.Column('deletion_requested', sa.Boolean(), nullable=False),
        sa.Column('deletion_requested_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deletion_request_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['current_room_bed_id'], ['room_beds.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_care_receivers_location_id'), 'care_receivers', ['location_id'], unique=False)
    op.create_index(
        'uq_care_receivers_current_room_bed',
        'care_receivers',
        ['current_room_bed_id'],
        unique=True,
        postgresql_where=sa.text('current_room_bed_id IS NOT NULL'),
    )

    op.create_table(
        'rosters',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('location_id', sa.Uuid(), nullable=False),
        sa.Column('caregiver_id', sa.Uuid(), nullable=False),
        sa.Column('room_bed_id', sa.Uuid(), nullable=True),
        sa.Column('shift_date', sa.Date(), nullable=False),
        sa.Column('shift_type', sa.Enum('MORNING', 'AFTERNOON', 'NIGHT', 'FULL_DAY', name='shift_type'), nullable=False),
        sa.Column('start_time', sa.Time(), nullable=False),
        sa.Column('end_time', sa.Time(), nullable=False),
        sa.Column(
            'status',
            sa.Enum('DRAFT', 'PUBLISHED', 'ACTIVE', 'COMPLETED', 'CANCELLED', name='roster_status'),
            nullable=False,
        ),
        sa.Column(
            'shift_status',
            sa.Enum('SCHEDULED', 'CONFIRMED', 'IN_PROGRESS', 'COMPLETED', 'CANCELLED', 'NO_SHOW', name='shift_status'),
            nullable=False,
        ),
        sa.Column('is_recurring', sa.Boolean(), nullable=False),
        sa.Column('recurrence_pattern', JSONBag, nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('metadata', JSONBag, nullable=True),
        sa.Column('external_calendar_event_id', sa.String(), nullable=True),
        sa.Column('confirmed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['caregiver_id'], ['caregivers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['room_bed_id'], ['room_beds.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_rosters_location_id'), 'rosters', ['location_id'], unique=False)
    op.create_index(op.f('ix_rosters_caregiver_id'), 'rosters', ['caregiver_id'], unique=False)
    op.create_index(op.f('ix_rosters_shift_date'), 'rosters', ['shift_date'], unique=False)
    op.create_index(op.f('ix_rosters_status'), 'rosters', ['status'], unique=False)

    op.create_table(
        'leave_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('caregiver_id', sa.Uuid(), nullable=False),
        sa.Column('location_id', sa.Uuid(), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('type', sa.Enum('FULL_DAY', 'HALF_DAY_AM', 'HALF_DAY_PM', name='leave_type'), nullable=False),
        sa.Column(
            'status',
            sa.Enum('PENDING', 'APPROVED', 'REJECTED', 'CANCELLED', name='leave_status'),
            nullable=False,
        ),
        sa.Column('reason', sa.Text(), nullable=False),
        sa.Column('attachments', JSONBag, nullable=False),
        sa.Column('requested_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.Column('decided_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('decided_by', sa.Uuid(), nullable=True),
        sa.Column('decision_note', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['caregiver_id'], ['caregivers.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['location_id'], ['locations.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_leave_requests_caregiver_id'), 'leave_requests', ['caregiver_id'], unique=False)
    op.create_index(op.f('ix_leave_requests_location_id'), 'leave_requests', ['location_id'], unique=False)
    op.create_index(op.f('ix_leave_requests_date'), 'leave_requests', ['date'], unique=False)
    op.create_index(op.f('ix_leave_requests_status'), 'leave_requests', ['status'], unique=False)
    op.create_index('ix_leave_requests_location_date', 'leave_requests', ['location_id', 'date'], unique=False)
    op.create_index(
        'uq_leave_requests_pending',
        'leave_requests',
        ['caregiver_id', 'date'],
        unique=True,
        postgresql_where=sa.text("status = 'PENDING'"),
    )

    op.create_table(
        'audit_logs',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('action', sa.String(), nullable=False),
        sa.Column('entity_type', sa.String(), nullable=False),
        sa.Column('entity_id', sa.Uuid(), nullable=True),
        sa.Column('changes', JSONBag, nullable=False),
        sa.Column('status', sa.Enum('SUCCESS', 'FAILURE', name='audit_status'), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('purpose', sa.String(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_audit_logs_user_id'), 'audit_logs', ['user_id'], unique=False)
    op.create_index(op.f('ix_audit_logs_action'), 'audit_logs', ['action'], unique=False)
    op.create_index(op.f('ix_audit_logs_created_at'), 'audit_logs', ['created_at'], unique=False)
    op.create_index('ix_audit_logs_entity', 'audit_logs', ['entity_type', 'entity_id'], unique=False)


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_table('audit_logs')
    op.drop_table('leave_requests')
    op.drop_table('rosters')
    op.drop_table('care_receivers')
    op.drop_table('room_beds')
    op.drop_table('caregivers')
    op.drop_table('locations')

    for enum_name in (
        'audit_status',
        'leave_status',
        'leave_type',
        'shift_status',
        'roster_status',
        'shift_type',
        'care_receiver_status',
        'caregiver_status',
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
