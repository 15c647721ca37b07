from alembic import op
import sqlalchemy as sa

revision = "20261019120000"
down_revision = None

ORDER_STATUSES = ("pendiente", "confirmada", "en_proceso", "enviada", "entregada", "cancelada", "reembolsada")
PAYMENT_METHODS = ("efectivo", "tarjeta", "transferencia", "pse")

def upgrade():
    op.create_table(
        'orders',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_number', sa.String(length=32), nullable=False, unique=True, index=True),
        sa.Column('user_email', sa.String(length=255), index=True, nullable=False),
        sa.Column('shipping_address_id', sa.String(length=36), nullable=True),
        sa.Column('status', sa.Enum(*ORDER_STATUSES, name='order_status'), nullable=False, server_default='pendiente', index=True),
        sa.Column('subtotal_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('shipping_cents', sa.BigInteger(), nullable=False, server_default='0'),
        sa.Column('total_cents', sa.BigInteger(), nullable=False),
        sa.Column('currency', sa.String(length=3), nullable=False, server_default='COP'),
        sa.Column('payment_method', sa.Enum(*PAYMENT_METHODS, name='payment_method'), nullable=True),
        sa.Column('payment_reference', sa.String(length=100), nullable=True, index=True),
        sa.Column('notes', sa.String(length=500), nullable=True),
        sa.Column('cancellation_reason', sa.String(length=200), nullable=True),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.text("(now() at time zone 'utc')")),
        sa.Column('updated_at', sa.DateTime(), nullable=False, server_default=sa.text("(now() at time zone 'utc')")),
    )
    op.create_table(
        'order_items',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('order_id', sa.Integer(), sa.ForeignKey('orders.id', ondelete='CASCADE'), nullable=False),
        sa.Column('product_id', sa.Integer(), nullable=False),
        sa.Column('qty', sa.Integer(), nullable=False),
        sa.Column('unit_price_cents', sa.BigInteger(), nullable=False),
        sa.Column('subtotal_cents', sa.BigInteger(), nullable=False),
        sa.Column('title_snapshot', sa.String(length=255), nullable=False),
        sa.Column('image_path', sa.String(length=512), nullable=True),
    )

def downgrade():
    op.drop_table('order_items')
    op.drop_table('orders')
    sa.Enum(name='payment_method').drop(op.get_bind(), checkfirst=True)
    sa.Enum(name='order_status').drop(op.get_bind(), checkfirst=True)
