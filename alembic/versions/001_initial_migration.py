"""Initial migration - Create all tables

Revision ID: 001
Revises:
Create Date: 2026-02-23 00:00:00.000000

"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = '001'
down_revision = None
branch_labels = None
depends_on = None


ENUMS = {
    'package_tier': ('foundation', 'growth', 'cfo_lite'),
    'tenant_user_role': ('owner', 'internal_admin', 'bookkeeper', 'analyst', 'viewer'),
    'service_cycle_status': ('collecting', 'processing', 'reconciling', 'reporting', 'delivered', 'paused'),
    'transaction_status': ('Planned', 'Sent', 'Received', 'Paid', 'Cancelled', 'Reconciled'),
    'lead_status': ('New', 'Attempted', 'Booked', 'Completed', 'Cancelled'),
    'crm_stage': ('Discovery', 'Proposal', 'Negotiation', 'Won', 'Lost'),
    'project_health': ('Green', 'Yellow', 'Red'),
    'task_status': ('Pending', 'Active', 'Blocked', 'Completed'),
    'intake_status': ('new', 'categorized', 'posted'),
}


def enum(name):
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def base_columns():
    return [
        sa.Column('id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
    ]


def tenant_column():
    return sa.Column('tenant_id', postgresql.UUID(as_uuid=True), nullable=False)


def tenant_fk(table):
    return sa.ForeignKeyConstraint(
        ['tenant_id'], ['tenants.id'],
        name=f'fk_{table}_tenant_id_tenants', ondelete='CASCADE'
    )


def base_indexes(table, tenant_scoped=True):
    op.create_index(f'ix_{table}_id', table, ['id'], unique=False)
    op.create_index(f'ix_{table}_created_at', table, ['created_at'], unique=False)
    if tenant_scoped:
        op.create_index(f'ix_{table}_tenant_id', table, ['tenant_id'], unique=False)


def upgrade() -> None:
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # Users
    op.create_table('users',
        *base_columns(),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('full_name', sa.String(length=255), nullable=True),
        sa.Column('hashed_password', sa.String(length=255), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('last_login', sa.DateTime(), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_users')
    )
    base_indexes('users', tenant_scoped=False)
    op.create_index('ix_users_email', 'users', ['email'], unique=True)

    # Tenants and memberships
    op.create_table('tenants',
        *base_columns(),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('package_tier', enum('package_tier'), nullable=False),
        sa.Column('niche', sa.String(length=200), nullable=True),
        sa.Column('timezone', sa.String(length=100), nullable=True),
        sa.Column('currency', sa.String(length=10), nullable=True),
        sa.PrimaryKeyConstraint('id', name='pk_tenants')
    )
    base_indexes('tenants', tenant_scoped=False)

    op.create_table('tenant_users',
        *base_columns(),
        tenant_column(),
        sa.Column('user_id', postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column('role', enum('tenant_user_role'), nullable=False),
        tenant_fk('tenant_users'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'],
                                name='fk_tenant_users_user_id_users', ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id', name='pk_tenant_users'),
        sa.UniqueConstraint('tenant_id', 'user_id', name='uq_tenant_users_tenant_user')
    )
    base_indexes('tenant_users')
    op.create_index('ix_tenant_users_user_id', 'tenant_users', ['user_id'], unique=False)

    # Service cycles
    op.create_table('service_cycles',
        *base_columns(),
        tenant_column(),
        sa.Column('month', sa.Date(), nullable=False),
        sa.Column('status', enum('service_cycle_status'), nullable=False),
        sa.Column('paused_from', enum('service_cycle_status'), nullable=True),
        tenant_fk('service_cycles'),
        sa.PrimaryKeyConstraint('id', name='pk_service_cycles'),
        sa.UniqueConstraint('tenant_id', 'month', name='uq_service_cycles_tenant_month')
    )
    base_indexes('service_cycles')

    for table, extra in (
        ('cycle_tasks', [
            sa.Column('task_type', sa.String(length=200), nullable=False),
            sa.Column('assignee', sa.String(length=200), nullable=True),
            sa.Column('status', sa.String(length=20), nullable=False),
            sa.Column('due_date', sa.Date(), nullable=True),
            sa.Column('position', sa.Integer(), nullable=False),
        ]),
        ('deliverables', [
            sa.Column('type', sa.String(length=100), nullable=False),
            sa.Column('url', sa.String(length=1000), nullable=True),
        ]),
    ):
        op.create_table(table,
            *base_columns(),
            tenant_column(),
            sa.Column('service_cycle_id', postgresql.UUID(as_uuid=True), nullable=False),
            *extra,
            tenant_fk(table),
            sa.ForeignKeyConstraint(['service_cycle_id'], ['service_cycles.id'],
                                    name=f'fk_{table}_service_cycle_id_service_cycles',
                                    ondelete='CASCADE'),
            sa.PrimaryKeyConstraint('id', name=f'pk_{table}')
        )
        base_indexes(table)
        op.create_index(f'ix_{table}_service_cycle_id', table, ['service_cycle_id'], unique=False)

    # Bookkeeping
    op.create_table('entities',
        *base_columns(),
        tenant_column(),
        sa.Column('entity_id', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=True),
        sa.Column('terms', sa.String(length=255), nullable=True),
        tenant_fk('entities'),
        sa.PrimaryKeyConstraint('id', name='pk_entities'),
        sa.UniqueConstraint('tenant_id', 'entity_id', name='uq_entities_tenant_entity'),
        sa.CheckConstraint("type IN ('Customer', 'Vendor', 'Partner')", name='ck_entities_type')
    )
    base_indexes('entities')

    op.create_table('categories',
        *base_columns(),
        tenant_column(),
        sa.Column('category_id', sa.String(length=50), nullable=False),
        sa.Column('category_name', sa.String(length=255), nullable=False),
        sa.Column('code', sa.String(length=50), nullable=True),
        sa.Column('type', sa.String(length=10), nullable=False),
        tenant_fk('categories'),
        sa.PrimaryKeyConstraint('id', name='pk_categories'),
        sa.UniqueConstraint('tenant_id', 'category_id', name='uq_categories_tenant_category'),
        sa.CheckConstraint("type IN ('Rev', 'Exp', 'Ast', 'Liab')", name='ck_categories_type')
    )
    base_indexes('categories')

    op.create_table('accounts',
        *base_columns(),
        tenant_column(),
        sa.Column('account_id', sa.String(length=50), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('initial_cash', sa.Numeric(precision=15, scale=2), nullable=True),
        tenant_fk('accounts'),
        sa.PrimaryKeyConstraint('id', name='pk_accounts'),
        sa.UniqueConstraint('tenant_id', 'account_id', name='uq_accounts_tenant_account')
    )
    base_indexes('accounts')

    op.create_table('transactions',
        *base_columns(),
        tenant_column(),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('category_id', sa.String(length=50), nullable=False),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=False),
        sa.Column('entity_id', sa.String(length=50), nullable=True),
        sa.Column('status', enum('transaction_status'), nullable=False),
        tenant_fk('transactions'),
        sa.PrimaryKeyConstraint('id', name='pk_transactions')
    )
    base_indexes('transactions')
    op.create_index('ix_transactions_date', 'transactions', ['date'], unique=False)

    op.create_table('budgets',
        *base_columns(),
        tenant_column(),
        sa.Column('category_id', sa.String(length=50), nullable=False),
        sa.Column('month', sa.Date(), nullable=False),
        sa.Column('budgeted_amount', sa.Numeric(precision=15, scale=2), nullable=False),
        tenant_fk('budgets'),
        sa.PrimaryKeyConstraint('id', name='pk_budgets'),
        sa.UniqueConstraint('tenant_id', 'category_id', 'month', name='uq_budgets_tenant_category_month')
    )
    base_indexes('budgets')

    op.create_table('invoices',
        *base_columns(),
        tenant_column(),
        sa.Column('invoice_id', sa.String(length=50), nullable=True),
        sa.Column('entity_id', sa.String(length=50), nullable=True),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=True),
        tenant_fk('invoices'),
        sa.PrimaryKeyConstraint('id', name='pk_invoices')
    )
    base_indexes('invoices')
    op.create_index('ix_invoices_due_date', 'invoices', ['due_date'], unique=False)

    # CRM and operations
    op.create_table('leads',
        *base_columns(),
        tenant_column(),
        sa.Column('lead_id', sa.String(length=50), nullable=False),
        sa.Column('entity_id', sa.String(length=50), nullable=True),
        sa.Column('lead_source', sa.String(length=100), nullable=True),
        sa.Column('date_generated', sa.Date(), nullable=True),
        sa.Column('lead_status', enum('lead_status'), nullable=False),
        tenant_fk('leads'),
        sa.PrimaryKeyConstraint('id', name='pk_leads'),
        sa.UniqueConstraint('tenant_id', 'lead_id', name='uq_leads_tenant_lead')
    )
    base_indexes('leads')

    op.create_table('opportunities',
        *base_columns(),
        tenant_column(),
        sa.Column('opp_id', sa.String(length=50), nullable=False),
        sa.Column('lead_id', sa.String(length=50), nullable=True),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('stage', enum('crm_stage'), nullable=False),
        sa.Column('probability', sa.Numeric(precision=5, scale=2), nullable=True),
        sa.Column('exp_close_date', sa.Date(), nullable=True),
        tenant_fk('opportunities'),
        sa.PrimaryKeyConstraint('id', name='pk_opportunities'),
        sa.UniqueConstraint('tenant_id', 'opp_id', name='uq_opportunities_tenant_opp')
    )
    base_indexes('opportunities')

    op.create_table('projects',
        *base_columns(),
        tenant_column(),
        sa.Column('project_id', sa.String(length=50), nullable=False),
        sa.Column('opp_id', sa.String(length=50), nullable=True),
        sa.Column('entity_id', sa.String(length=50), nullable=True),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('project_health', enum('project_health'), nullable=False),
        tenant_fk('projects'),
        sa.PrimaryKeyConstraint('id', name='pk_projects'),
        sa.UniqueConstraint('tenant_id', 'project_id', name='uq_projects_tenant_project')
    )
    base_indexes('projects')

    op.create_table('tasks',
        *base_columns(),
        tenant_column(),
        sa.Column('task_id', sa.String(length=50), nullable=False),
        sa.Column('project_id', sa.String(length=50), nullable=True),
        sa.Column('assigned_to', sa.String(length=200), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('status', enum('task_status'), nullable=False),
        tenant_fk('tasks'),
        sa.PrimaryKeyConstraint('id', name='pk_tasks'),
        sa.UniqueConstraint('tenant_id', 'task_id', name='uq_tasks_tenant_task')
    )
    base_indexes('tasks')

    op.create_table('service_engagements',
        *base_columns(),
        tenant_column(),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('billing_type', sa.String(length=50), nullable=True),
        sa.Column('monthly_retainer', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('setup_fee', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('status', sa.String(length=50), nullable=True),
        tenant_fk('service_engagements'),
        sa.PrimaryKeyConstraint('id', name='pk_service_engagements')
    )
    base_indexes('service_engagements')

    # Intake
    op.create_table('intake_events',
        *base_columns(),
        tenant_column(),
        sa.Column('source', sa.String(length=100), nullable=False),
        sa.Column('date', sa.Date(), nullable=True),
        sa.Column('amount', sa.Numeric(precision=15, scale=2), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('attachment_url', sa.String(length=1000), nullable=True),
        sa.Column('raw_payload', postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column('status', enum('intake_status'), nullable=False),
        tenant_fk('intake_events'),
        sa.PrimaryKeyConstraint('id', name='pk_intake_events')
    )
    base_indexes('intake_events')

    op.create_table('missing_data_alerts',
        *base_columns(),
        tenant_column(),
        sa.Column('week_start', sa.Date(), nullable=False),
        sa.Column('missing_receipts_count', sa.Integer(), nullable=False),
        sa.Column('last_submission_at', sa.DateTime(), nullable=True),
        sa.Column('status', sa.String(length=20), nullable=False),
        tenant_fk('missing_data_alerts'),
        sa.PrimaryKeyConstraint('id', name='pk_missing_data_alerts'),
        sa.UniqueConstraint('tenant_id', 'week_start', name='uq_missing_data_alerts_tenant_week')
    )
    base_indexes('missing_data_alerts')


def downgrade() -> None:
    for table in (
        'missing_data_alerts', 'intake_events',
        'service_engagements', 'tasks', 'projects', 'opportunities', 'leads',
        'invoices', 'budgets', 'transactions', 'accounts', 'categories', 'entities',
        'deliverables', 'cycle_tasks', 'service_cycles',
        'tenant_users', 'tenants', 'users',
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
