"""
Initial ERP schema.

- users, user_roles, departments (departments.manager_id added after users)
- customers, products, raw_materials, material_transactions, product_recipes
- orders, order_items
- production_orders, production_processes
- tasks, task_assignments
- notifications, user_notification_preferences, email_notification_logs
- audit_logs, role_permissions, reports

Role permission rows are seeded lazily by the application (or
scripts/seed_role_permissions.py), not here.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = 'erp_initial_20251001'
down_revision = None
branch_labels = None
depends_on = None


def _uuid(**kwargs):
    return sa.Column(kwargs.pop('name', 'id'), postgresql.UUID(as_uuid=True), **kwargs)


def _fk(name, target, ondelete, nullable=True):
    return sa.Column(name, postgresql.UUID(as_uuid=True), sa.ForeignKey(target, ondelete=ondelete), nullable=nullable)


def _money(name, nullable=False, default=None):
    return sa.Column(name, sa.Numeric(14, 2), nullable=nullable, server_default=default)


def _qty(name, nullable=False, default=None):
    return sa.Column(name, sa.Numeric(14, 3), nullable=nullable, server_default=default)


def _timestamps(updated=True):
    cols = [sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()))
    return cols


def upgrade() -> None:
    op.create_table(
        'departments',
        _uuid(primary_key=True),
        sa.Column('name', sa.String(120), nullable=False, unique=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('manager_id', postgresql.UUID(as_uuid=True), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'users',
        _uuid(primary_key=True),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('full_name', sa.String(), nullable=True),
        sa.Column('phone', sa.String(40), nullable=True),
        sa.Column('avatar_url', sa.String(500), nullable=True),
        _fk('department_id', 'departments.id', 'SET NULL'),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_foreign_key(
        'fk_departments_manager_id_users', 'departments', 'users', ['manager_id'], ['id'], ondelete='SET NULL'
    )
    op.create_table(
        'user_roles',
        _uuid(primary_key=True),
        _fk('user_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('role', sa.String(20), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint('user_id', name='uq_user_roles_user_id'),
        sa.CheckConstraint("role IN ('admin','manager','operator','viewer')", name='ck_user_roles_role'),
    )

    op.create_table(
        'customers',
        _uuid(primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('company', sa.String(200), nullable=True),
        sa.Column('email', sa.String(320), nullable=True),
        sa.Column('phone', sa.String(40), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('tax_number', sa.String(40), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _fk('created_by', 'users.id', 'SET NULL'),
        *_timestamps(),
    )
    op.create_index('ix_customers_created_at', 'customers', ['created_at'])
    op.create_index('ix_customers_name', 'customers', ['name'])

    op.create_table(
        'products',
        _uuid(primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('sku', sa.String(80), nullable=False, unique=True),
        sa.Column('category', sa.String(100), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        _money('price', default='0'),
        _money('cost', nullable=True, default='0'),
        _qty('stock', default='0'),
        sa.Column('unit', sa.String(20), nullable=False, server_default='adet'),
        _qty('min_stock', nullable=True, default='0'),
        _qty('max_stock', nullable=True),
        sa.Column('location', sa.String(120), nullable=True),
        *_timestamps(),
    )
    op.create_table(
        'raw_materials',
        _uuid(primary_key=True),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('sku', sa.String(80), nullable=False, unique=True),
        sa.Column('category', sa.String(20), nullable=False, server_default='other'),
        _money('cost', default='0'),
        _qty('stock', default='0'),
        sa.Column('unit', sa.String(20), nullable=False, server_default='kg'),
        _qty('min_stock', default='0'),
        _qty('max_stock', nullable=True),
        sa.Column('supplier', sa.String(200), nullable=True),
        sa.Column('location', sa.String(120), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint(
            "category IN ('chemical','metal','plastic','electronic','packaging','other')",
            name='ck_raw_materials_category',
        ),
    )
    op.create_table(
        'material_transactions',
        _uuid(primary_key=True),
        _fk('raw_material_id', 'raw_materials.id', 'CASCADE', nullable=False),
        sa.Column('transaction_type', sa.String(20), nullable=False),
        _qty('quantity'),
        _money('unit_cost', nullable=True),
        sa.Column('reference_type', sa.String(40), nullable=True),
        sa.Column('reference_id', postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _fk('created_by', 'users.id', 'SET NULL'),
        *_timestamps(updated=False),
        sa.CheckConstraint(
            "transaction_type IN ('purchase','consumption','adjustment','return')",
            name='ck_material_transactions_type',
        ),
    )
    op.create_index(
        'ix_material_transactions_material_created_at', 'material_transactions', ['raw_material_id', 'created_at']
    )
    op.create_index(
        'ix_material_transactions_reference', 'material_transactions', ['reference_type', 'reference_id']
    )
    op.create_table(
        'product_recipes',
        _uuid(primary_key=True),
        _fk('product_id', 'products.id', 'CASCADE', nullable=False),
        _fk('raw_material_id', 'raw_materials.id', 'CASCADE', nullable=False),
        _qty('quantity_per_unit'),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(updated=False),
        sa.UniqueConstraint('product_id', 'raw_material_id', name='uq_product_recipes_product_material'),
        sa.CheckConstraint('quantity_per_unit > 0', name='ck_product_recipes_quantity_positive'),
    )

    op.create_table(
        'orders',
        _uuid(primary_key=True),
        sa.Column('order_number', sa.String(40), nullable=False, unique=True),
        _fk('customer_id', 'customers.id', 'RESTRICT', nullable=False),
        sa.Column('order_date', sa.Date(), nullable=False, server_default=sa.func.current_date()),
        sa.Column('delivery_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        _money('subtotal', default='0'),
        _money('tax', default='0'),
        _money('total', default='0'),
        sa.Column('notes', sa.Text(), nullable=True),
        _fk('created_by', 'users.id', 'SET NULL'),
        *_timestamps(),
    )
    op.create_index('ix_orders_order_date', 'orders', ['order_date'])
    op.create_index('ix_orders_customer_id', 'orders', ['customer_id'])
    op.create_index('ix_orders_status', 'orders', ['status'])
    op.create_table(
        'order_items',
        _uuid(primary_key=True),
        _fk('order_id', 'orders.id', 'CASCADE', nullable=False),
        _fk('product_id', 'products.id', 'RESTRICT', nullable=False),
        _qty('quantity'),
        _money('unit_price'),
        _money('discount', default='0'),
        _money('total'),
        *_timestamps(updated=False),
    )

    op.create_table(
        'production_orders',
        _uuid(primary_key=True),
        sa.Column('order_number', sa.String(40), nullable=False, unique=True),
        sa.Column('product_name', sa.String(200), nullable=False),
        _qty('quantity'),
        sa.Column('unit', sa.String(20), nullable=False, server_default='adet'),
        _fk('customer_id', 'customers.id', 'SET NULL'),
        sa.Column('customer_name', sa.String(200), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='planned'),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('due_date', sa.Date(), nullable=True),
        sa.Column('completed_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        _fk('created_by', 'users.id', 'SET NULL'),
        *_timestamps(),
    )
    op.create_index('ix_production_orders_status', 'production_orders', ['status'])
    op.create_index('ix_production_orders_created_at', 'production_orders', ['created_at'])
    op.create_table(
        'production_processes',
        _uuid(primary_key=True),
        _fk('order_id', 'production_orders.id', 'CASCADE', nullable=False),
        sa.Column('process_name', sa.String(200), nullable=False),
        sa.Column('sequence_order', sa.Integer(), nullable=False, server_default='1'),
        _fk('assigned_department', 'departments.id', 'SET NULL'),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('started_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        'ix_production_processes_order_sequence', 'production_processes', ['order_id', 'sequence_order']
    )
    op.create_index('ix_production_processes_department', 'production_processes', ['assigned_department'])

    op.create_table(
        'tasks',
        _uuid(primary_key=True),
        sa.Column('title', sa.String(300), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('priority', sa.Integer(), nullable=False, server_default='2'),
        sa.Column('due_date', sa.DateTime(timezone=True), nullable=True),
        _fk('production_order_id', 'production_orders.id', 'SET NULL'),
        _fk('production_process_id', 'production_processes.id', 'SET NULL'),
        _fk('created_by', 'users.id', 'SET NULL'),
        *_timestamps(),
        sa.CheckConstraint('priority BETWEEN 1 AND 5', name='ck_tasks_priority'),
    )
    op.create_index('ix_tasks_status', 'tasks', ['status'])
    op.create_index('ix_tasks_created_by', 'tasks', ['created_by'])
    op.create_index('ix_tasks_production_process_id', 'tasks', ['production_process_id'])
    op.create_table(
        'task_assignments',
        _uuid(primary_key=True),
        _fk('task_id', 'tasks.id', 'CASCADE', nullable=False),
        _fk('assigned_to', 'users.id', 'CASCADE', nullable=False),
        _fk('assigned_by', 'users.id', 'SET NULL'),
        sa.Column('assigned_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('declined_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.UniqueConstraint('task_id', 'assigned_to', name='uq_task_assignments_task_user'),
    )
    op.create_index('ix_task_assignments_assigned_to', 'task_assignments', ['assigned_to'])

    op.create_table(
        'notifications',
        _uuid(primary_key=True),
        _fk('user_id', 'users.id', 'CASCADE', nullable=False),
        _fk('task_id', 'tasks.id', 'CASCADE'),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('message', sa.Text(), nullable=False),
        sa.Column('is_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index('idx_notifications_user_id_created_at', 'notifications', ['user_id', 'created_at'])
    op.create_index('idx_notifications_user_id_is_read', 'notifications', ['user_id', 'is_read'])
    op.create_index('idx_notifications_expires_at', 'notifications', ['expires_at'])
    op.create_table(
        'user_notification_preferences',
        _uuid(primary_key=True),
        _fk('user_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('notification_type', sa.String(50), nullable=False),
        sa.Column('email_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('in_app_enabled', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_index(
        'idx_user_notification_preferences_user_id', 'user_notification_preferences', ['user_id']
    )
    op.create_index(
        'idx_user_notification_preferences_unique',
        'user_notification_preferences',
        ['user_id', 'notification_type'],
        unique=True,
    )
    op.create_table(
        'email_notification_logs',
        _uuid(primary_key=True),
        _fk('notification_id', 'notifications.id', 'SET NULL'),
        _fk('task_id', 'tasks.id', 'SET NULL'),
        _fk('user_id', 'users.id', 'CASCADE', nullable=False),
        sa.Column('email_address', sa.String(320), nullable=False),
        sa.Column('notification_type', sa.String(50), nullable=False),
        sa.Column('subject', sa.String(300), nullable=False),
        sa.Column('status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('provider_message_id', sa.String(255), nullable=True),
        sa.Column('error_message', sa.Text(), nullable=True),
        sa.Column('sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        'idx_email_notification_logs_user_id_created_at', 'email_notification_logs', ['user_id', 'created_at']
    )
    op.create_index('idx_email_notification_logs_status', 'email_notification_logs', ['status'])

    op.create_table(
        'audit_logs',
        _uuid(primary_key=True),
        sa.Column('action', sa.String(10), nullable=False),
        sa.Column('table_name', sa.String(80), nullable=False),
        sa.Column('record_id', sa.String(64), nullable=True),
        sa.Column('old_data', postgresql.JSONB(), nullable=True),
        sa.Column('new_data', postgresql.JSONB(), nullable=True),
        _fk('user_id', 'users.id', 'SET NULL'),
        sa.Column('ip_address', sa.String(64), nullable=True),
        sa.Column('user_agent', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index('ix_audit_logs_created_at', 'audit_logs', ['created_at'])
    op.create_index('ix_audit_logs_table_name', 'audit_logs', ['table_name'])
    op.create_index('ix_audit_logs_user_id_created_at', 'audit_logs', ['user_id', 'created_at'])
    op.create_index('ix_audit_logs_action', 'audit_logs', ['action'])

    op.create_table(
        'role_permissions',
        _uuid(primary_key=True),
        sa.Column('role', sa.String(20), nullable=False),
        sa.Column('resource', sa.String(60), nullable=False),
        sa.Column('can_create', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_update', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_delete', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('role', 'resource', name='uq_role_permissions_role_resource'),
    )

    op.create_table(
        'reports',
        _uuid(primary_key=True),
        sa.Column('title', sa.String(300), nullable=False),
        sa.Column('report_type', sa.String(20), nullable=False),
        sa.Column('report_format', sa.String(10), nullable=False, server_default='pdf'),
        sa.Column('start_date', sa.Date(), nullable=True),
        sa.Column('end_date', sa.Date(), nullable=True),
        sa.Column('file_path', sa.String(500), nullable=True),
        sa.Column('file_size', sa.Integer(), nullable=True),
        _fk('created_by', 'users.id', 'SET NULL'),
        *_timestamps(updated=False),
    )
    op.create_index('ix_reports_created_by_created_at', 'reports', ['created_by', 'created_at'])
    op.create_index('ix_reports_report_type', 'reports', ['report_type'])


def downgrade() -> None:
    for table in (
        'reports',
        'role_permissions',
        'audit_logs',
        'email_notification_logs',
        'user_notification_preferences',
        'notifications',
        'task_assignments',
        'tasks',
        'production_processes',
        'production_orders',
        'order_items',
        'orders',
        'product_recipes',
        'material_transactions',
        'raw_materials',
        'products',
        'customers',
        'user_roles',
    ):
        op.drop_table(table)
    op.drop_constraint('fk_departments_manager_id_users', 'departments', type_='foreignkey')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')
    op.drop_table('departments')
