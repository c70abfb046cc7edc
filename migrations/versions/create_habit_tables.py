"""Create habit, entry and settings tables

Revision ID: create_habit_tables
Revises: 
Create Date: 2026-10-19

"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = 'create_habit_tables'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # Create habits table
    op.create_table('habits',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('color', sa.String(length=7), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name')
    )
    op.create_index(op.f('ix_habits_category'), 'habits', ['category'], unique=False)
    op.create_index(op.f('ix_habits_is_active'), 'habits', ['is_active'], unique=False)
    op.create_index(op.f('ix_habits_created_at'), 'habits', ['created_at'], unique=False)

    # Create habit_entries table
    op.create_table('habit_entries',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('habit_id', sa.String(length=36), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('completed', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('completed_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['habit_id'], ['habits.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('habit_id', 'date', name='uq_habit_entries_habit_date')
    )
    op.create_index(op.f('ix_habit_entries_date'), 'habit_entries', ['date'], unique=False)
    op.create_index('ix_habit_entries_habit_date', 'habit_entries', ['habit_id', 'date'], unique=False)

    # Create user_settings table
    op.create_table('user_settings',
        sa.Column('id', sa.String(length=36), nullable=False),
        sa.Column('user_id', sa.String(length=255), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id')
    )


def downgrade():
    op.drop_table('user_settings')
    op.drop_index('ix_habit_entries_habit_date', table_name='habit_entries')
    op.drop_index(op.f('ix_habit_entries_date'), table_name='habit_entries')
    op.drop_table('habit_entries')
    op.drop_index(op.f('ix_habits_created_at'), table_name='habits')
    op.drop_index(op.f('ix_habits_is_active'), table_name='habits')
    op.drop_index(op.f('ix_habits_category'), table_name='habits')
    op.drop_table('habits')
