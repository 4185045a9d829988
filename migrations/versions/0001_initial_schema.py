"""initial schema: teams, profiles, tasks, inbox, rooms and calendar"""

from alembic import op
import sqlalchemy as sa

revision = '0001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.create_table(
        'teams',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'profiles',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('email', sa.String(length=180), nullable=False, unique=True),
        sa.Column('avatar_url', sa.String(length=500)),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('team_id', sa.String(length=36), sa.ForeignKey('teams.id', ondelete='SET NULL')),
        sa.Column('password_hash', sa.String(length=255)),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'tasks',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('priority', sa.String(length=20), nullable=False),
        sa.Column('due_date', sa.Date()),
        sa.Column('team_id', sa.String(length=36), sa.ForeignKey('teams.id', ondelete='SET NULL')),
        sa.Column('is_general', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_tasks_created_at', 'tasks', ['created_at'])

    op.create_table(
        'task_owners',
        sa.Column('task_id', sa.String(length=36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), primary_key=True),
    )

    op.create_table(
        'task_messages',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('task_id', sa.String(length=36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('type', sa.String(length=10), nullable=False),
        sa.Column('media_url', sa.String(length=500)),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_task_messages_task_id', 'task_messages', ['task_id'])

    op.create_table(
        'rooms',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('neighborhood', sa.String(length=120), nullable=False),
        sa.Column('address', sa.String(length=255), nullable=False),
        sa.Column('reference_point', sa.String(length=255)),
        sa.Column('size', sa.Float(), nullable=False),
        sa.Column('images', sa.JSON(), nullable=False),
        sa.Column('modalities', sa.JSON(), nullable=False),
        sa.Column('specialties', sa.JSON(), nullable=False),
        sa.Column('amenities', sa.JSON(), nullable=False),
        sa.Column('equipment', sa.JSON(), nullable=False),
        sa.Column('price_per_hour', sa.Float()),
        sa.Column('price_per_shift', sa.Float()),
        sa.Column('price_fixed', sa.Float()),
        sa.Column('night_shift_available', sa.Boolean(), nullable=False),
        sa.Column('weekend_available', sa.Boolean(), nullable=False),
        sa.Column('host_info', sa.JSON()),
        sa.Column('manager_info', sa.JSON()),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_rooms_neighborhood', 'rooms', ['neighborhood'])

    op.create_table(
        'notifications',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), nullable=False),
        sa.Column('from_user_id', sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        sa.Column('task_id', sa.String(length=36), sa.ForeignKey('tasks.id', ondelete='CASCADE')),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('content', sa.Text(), nullable=False),
        sa.Column('read', sa.Boolean(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )
    op.create_index('ix_notifications_user_id', 'notifications', ['user_id'])
    op.create_index('ix_notifications_created_at', 'notifications', ['created_at'])

    op.create_table(
        'calendar_events',
        sa.Column('id', sa.String(length=36), primary_key=True),
        sa.Column('title', sa.String(length=200), nullable=False),
        sa.Column('type', sa.String(length=20), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('start_time', sa.String(length=5)),
        sa.Column('end_time', sa.String(length=5)),
        sa.Column('description', sa.Text()),
        sa.Column('location', sa.String(length=255)),
        sa.Column('team_id', sa.String(length=36), sa.ForeignKey('teams.id', ondelete='SET NULL')),
        sa.Column('is_general', sa.Boolean(), nullable=False),
        sa.Column('created_by', sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='SET NULL')),
        sa.Column('created_at', sa.DateTime(), nullable=False),
    )

    op.create_table(
        'event_participants',
        sa.Column('event_id', sa.String(length=36), sa.ForeignKey('calendar_events.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('user_id', sa.String(length=36), sa.ForeignKey('profiles.id', ondelete='CASCADE'), primary_key=True),
    )


def downgrade():
    op.drop_table('event_participants')
    op.drop_table('calendar_events')
    op.drop_index('ix_notifications_created_at', table_name='notifications')
    op.drop_index('ix_notifications_user_id', table_name='notifications')
    op.drop_table('notifications')
    op.drop_index('ix_rooms_neighborhood', table_name='rooms')
    op.drop_table('rooms')
    op.drop_index('ix_task_messages_task_id', table_name='task_messages')
    op.drop_table('task_messages')
    op.drop_table('task_owners')
    op.drop_index('ix_tasks_created_at', table_name='tasks')
    op.drop_table('tasks')
    op.drop_table('profiles')
    op.drop_table('teams')
