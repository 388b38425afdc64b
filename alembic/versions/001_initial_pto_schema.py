"""Initial PTO schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    # Create users table
    op.create_table(
        'users',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('role', sa.Enum('ADMIN', 'EMPLOYEE', name='userrole'), nullable=False, server_default='EMPLOYEE'),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('status', sa.Enum('active', 'inactive', name='userstatus'), nullable=False, server_default='active'),
        sa.Column('reports_to_user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_reports_to_user_id', 'users', ['reports_to_user_id'])
    op.create_index('idx_users_status', 'users', ['status'])

    # Create leave_types table
    op.create_table(
        'leave_types',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('code', sa.String(20), nullable=False),
        sa.Column('description', sa.Text, nullable=True),
        sa.Column('color', sa.String(20), nullable=True),
        sa.Column('multi_level_approval', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('disable_hierarchy_approval', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('specific_approvers', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('show_in_department_calendar', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('sort_order', sa.Integer, nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_leave_types_code', 'leave_types', ['code'], unique=True)

    # Create leave_policies table
    op.create_table(
        'leave_policies',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('leave_type_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('leave_types.id'), nullable=False),
        sa.Column('initial_days', sa.Numeric(8, 2), nullable=False, server_default='0'),
        sa.Column('annual_accrual_amount', sa.Numeric(8, 2), nullable=False, server_default='0'),
        sa.Column('rollover_enabled', sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column('max_rollover_days', sa.Numeric(8, 2), nullable=True),
        sa.Column('effective_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=True),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_leave_policies_user_id', 'leave_policies', ['user_id'])
    op.create_index('ix_leave_policies_leave_type_id', 'leave_policies', ['leave_type_id'])
    op.create_index('idx_leave_policies_user_type', 'leave_policies', ['user_id', 'leave_type_id'])

    # Create leave_balances table
    op.create_table(
        'leave_balances',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('leave_type_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('leave_types.id'), nullable=False),
        sa.Column('year', sa.Integer, nullable=False),
        sa.Column('balance', sa.Numeric(8, 2), nullable=False, server_default='0'),
        sa.Column('pending_balance', sa.Numeric(8, 2), nullable=False, server_default='0'),
        sa.Column('used_balance', sa.Numeric(8, 2), nullable=False, server_default='0'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('user_id', 'leave_type_id', 'year', name='uq_leave_balance_user_type_year'),
    )
    op.create_index('ix_leave_balances_user_id', 'leave_balances', ['user_id'])
    op.create_index('ix_leave_balances_leave_type_id', 'leave_balances', ['leave_type_id'])

    # Create leave_requests table
    op.create_table(
        'leave_requests',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('request_number', sa.String(100), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('leave_type_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('leave_types.id'), nullable=False),
        sa.Column('start_date', sa.Date, nullable=False),
        sa.Column('end_date', sa.Date, nullable=False),
        sa.Column('total_days', sa.Numeric(6, 2), nullable=False),
        sa.Column('reason', sa.String(1000), nullable=True),
        sa.Column('day_options', sa.JSON, nullable=False, server_default='[]'),
        sa.Column('status', sa.Enum('pending', 'approved', 'denied', 'cancelled', name='leavestatus'), nullable=False, server_default='pending'),
        sa.Column('denial_reason', sa.String(1000), nullable=True),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('denied_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_leave_requests_request_number', 'leave_requests', ['request_number'])
    op.create_index('ix_leave_requests_user_id', 'leave_requests', ['user_id'])
    op.create_index('ix_leave_requests_leave_type_id', 'leave_requests', ['leave_type_id'])
    op.create_index('idx_leave_requests_user_status', 'leave_requests', ['user_id', 'status'])
    op.create_index('idx_leave_requests_type_start', 'leave_requests', ['leave_type_id', 'start_date'])

    # Create leave_approvals table
    op.create_table(
        'leave_approvals',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('leave_request_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('leave_requests.id'), nullable=False),
        sa.Column('approver_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('level', sa.Integer, nullable=False, server_default='1'),
        sa.Column('sequence', sa.Integer, nullable=False, server_default='1'),
        sa.Column('status', sa.Enum('pending', 'approved', 'denied', name='approvalstatus'), nullable=False, server_default='pending'),
        sa.Column('comments', sa.String(1000), nullable=True),
        sa.Column('responded_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint('leave_request_id', 'sequence', name='uq_leave_approval_request_sequence'),
    )
    op.create_index('ix_leave_approvals_leave_request_id', 'leave_approvals', ['leave_request_id'])
    op.create_index('ix_leave_approvals_approver_id', 'leave_approvals', ['approver_id'])
    op.create_index('idx_leave_approvals_approver_status', 'leave_approvals', ['approver_id', 'status'])

    # Create leave_transactions table
    op.create_table(
        'leave_transactions',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('leave_balance_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('leave_balances.id'), nullable=False),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('leave_type_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('leave_types.id'), nullable=False),
        sa.Column('leave_request_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('leave_requests.id'), nullable=True),
        sa.Column('year', sa.Integer, nullable=False),
        sa.Column('type', sa.Enum('reservation', 'release', 'refund', 'adjustment', name='transactiontype'), nullable=False),
        sa.Column('amount', sa.Numeric(8, 2), nullable=False),
        sa.Column('balance_before', sa.Numeric(8, 2), nullable=False),
        sa.Column('balance_after', sa.Numeric(8, 2), nullable=False),
        sa.Column('pending_before', sa.Numeric(8, 2), nullable=False),
        sa.Column('pending_after', sa.Numeric(8, 2), nullable=False),
        sa.Column('description', sa.String(500), nullable=True),
        sa.Column('created_by_id', postgresql.UUID(as_uuid=True), sa.ForeignKey('users.id'), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_leave_transactions_leave_balance_id', 'leave_transactions', ['leave_balance_id'])
    op.create_index('ix_leave_transactions_leave_request_id', 'leave_transactions', ['leave_request_id'])
    op.create_index('idx_leave_transactions_user_type_year', 'leave_transactions', ['user_id', 'leave_type_id', 'year'])

    # Create holidays table
    op.create_table(
        'holidays',
        sa.Column('id', postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('date', sa.Date, nullable=False),
        sa.Column('is_active', sa.Boolean, nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index('ix_holidays_date', 'holidays', ['date'], unique=True)


def downgrade() -> None:
    op.drop_table('holidays')
    op.drop_table('leave_transactions')
    op.drop_table('leave_approvals')
    op.drop_table('leave_requests')
    op.drop_table('leave_balances')
    op.drop_table('leave_policies')
    op.drop_table('leave_types')
    op.drop_table('users')

    # Drop enums
    sa.Enum(name='transactiontype').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='approvalstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='leavestatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='userstatus').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='userrole').drop(op.get_bind(), checkfirst=True)
