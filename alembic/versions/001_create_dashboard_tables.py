"""create dashboard tables

Revision ID: 001
Revises:
Create Date: 2026-10-18 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        't_user',
        sa.Column('id', sa.String(), primary_key=True),
        sa.Column('display_name', sa.String(), nullable=False, server_default=''),
        sa.Column('email', sa.String(), nullable=False, server_default=''),
        sa.Column('is_admin', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )

    op.create_table(
        't_tab',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('title', sa.String(), nullable=False, server_default=''),
        sa.Column('layout', sa.JSON(), nullable=False),
    )

    op.create_table(
        'tj_tabaccess',
        sa.Column('user_id', sa.String(), primary_key=True),
        sa.Column('tab_id', sa.Integer(), primary_key=True),
    )
    op.create_foreign_key(
        'fk_tabaccess_tab_id',
        'tj_tabaccess',
        't_tab',
        ['tab_id'],
        ['id'],
        ondelete='CASCADE'
    )
    op.create_index('ix_tj_tabaccess_tab_id', 'tj_tabaccess', ['tab_id'], unique=False)

    op.create_table(
        't_widget',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('tab_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(), nullable=False),
        sa.Column('config', sa.JSON(), nullable=False),
    )
    op.create_foreign_key(
        'fk_widget_tab_id',
        't_widget',
        't_tab',
        ['tab_id'],
        ['id'],
        ondelete='CASCADE'
    )
    op.create_index('ix_t_widget_tab_id', 't_widget', ['tab_id'], unique=False)

    # Feeds are shared between users, one row per URL
    op.create_table(
        't_feed',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('url', sa.String(), nullable=False),
        sa.Column('next_retrieval', sa.DateTime(timezone=True), nullable=False),
        sa.Column('title', sa.String(), nullable=False, server_default=''),
    )
    op.create_unique_constraint('uq_feed_url', 't_feed', ['url'])

    op.create_table(
        't_feeditem',
        sa.Column('feed_id', sa.Integer(), primary_key=True),
        sa.Column('guid', sa.String(), primary_key=True),
        sa.Column('title', sa.String(), nullable=False, server_default=''),
        sa.Column('published', sa.DateTime(timezone=True), nullable=False),
        sa.Column('link', sa.String(), nullable=False, server_default=''),
    )
    op.create_foreign_key(
        'fk_feeditem_feed_id',
        't_feeditem',
        't_feed',
        ['feed_id'],
        ['id'],
        ondelete='CASCADE'
    )

    op.create_table(
        'tj_feeditem_user',
        sa.Column('user_id', sa.String(), primary_key=True),
        sa.Column('feed_id', sa.Integer(), primary_key=True),
        sa.Column('guid', sa.String(), primary_key=True),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
    )
    op.create_foreign_key(
        'fk_feeditem_user_feed_id',
        'tj_feeditem_user',
        't_feed',
        ['feed_id'],
        ['id'],
        ondelete='CASCADE'
    )

    op.create_table(
        't_account',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('provider', sa.String(), nullable=False),
        sa.Column('account_id', sa.String(), nullable=False, server_default=''),
        sa.Column('token', sa.JSON(), nullable=True),
    )
    op.create_index('ix_t_account_user_id', 't_account', ['user_id'], unique=False)

    op.create_table(
        't_temporarycode',
        sa.Column('code', sa.String(), primary_key=True),
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('provider', sa.String(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('now()'), nullable=False),
    )

    op.create_table(
        't_emailitem',
        sa.Column('account_id', sa.Integer(), primary_key=True),
        sa.Column('guid', sa.String(), primary_key=True),
        sa.Column('title', sa.String(), nullable=False, server_default=''),
        sa.Column('published', sa.DateTime(timezone=True), nullable=False),
        sa.Column('link', sa.String(), nullable=False, server_default=''),
        sa.Column('sender', sa.String(), nullable=False, server_default=''),
        sa.Column('snippet', sa.String(), nullable=False, server_default=''),
        sa.Column('read', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('version', sa.BigInteger(), nullable=False, server_default='0'),
    )
    op.create_foreign_key(
        'fk_emailitem_account_id',
        't_emailitem',
        't_account',
        ['account_id'],
        ['id'],
        ondelete='CASCADE'
    )


def downgrade() -> None:
    op.drop_constraint('fk_emailitem_account_id', 't_emailitem', type_='foreignkey')
    op.drop_table('t_emailitem')
    op.drop_table('t_temporarycode')
    op.drop_index('ix_t_account_user_id', table_name='t_account')
    op.drop_table('t_account')
    op.drop_constraint('fk_feeditem_user_feed_id', 'tj_feeditem_user', type_='foreignkey')
    op.drop_table('tj_feeditem_user')
    op.drop_constraint('fk_feeditem_feed_id', 't_feeditem', type_='foreignkey')
    op.drop_table('t_feeditem')
    op.drop_constraint('uq_feed_url', 't_feed', type_='unique')
    op.drop_table('t_feed')
    op.drop_index('ix_t_widget_tab_id', table_name='t_widget')
    op.drop_constraint('fk_widget_tab_id', 't_widget', type_='foreignkey')
    op.drop_table('t_widget')
    op.drop_index('ix_tj_tabaccess_tab_id', table_name='tj_tabaccess')
    op.drop_constraint('fk_tabaccess_tab_id', 'tj_tabaccess', type_='foreignkey')
    op.drop_table('tj_tabaccess')
    op.drop_table('t_tab')
    op.drop_table('t_user')
