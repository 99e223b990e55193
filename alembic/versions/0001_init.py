from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_init"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps(updated: bool = True):
    cols = [sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()))
    return cols


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("spotify_id", sa.Text(), nullable=False, unique=True),
        sa.Column("username", sa.String(length=64), nullable=False, unique=True),
        sa.Column("display_name", sa.Text(), nullable=False, server_default=""),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        *_timestamps(),
    )

    op.create_table(
        "external_links",
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
        sa.Column("provider", sa.String(length=32), primary_key=True),
        sa.Column("provider_user_id", sa.Text(), nullable=False),
        sa.Column("access_token", sa.Text(), nullable=True),
        sa.Column("refresh_token", sa.Text(), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
    )

    op.create_table(
        "shelves",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("icon_url", sa.Text(), nullable=True),
        sa.Column("is_public", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.CheckConstraint("length(name) > 0", name="ck_shelves_name"),
    )
    op.create_index("ix_shelves_user_sort", "shelves", ["user_id", "sort_order"])

    op.create_table(
        "shelf_items",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("shelf_id", sa.Uuid(as_uuid=True), sa.ForeignKey("shelves.id", ondelete="CASCADE"), nullable=False),
        sa.Column("spotify_type", sa.String(length=16), nullable=False),
        sa.Column("spotify_id", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("artist", sa.Text(), nullable=False, server_default=""),
        sa.Column("album", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("color", sa.String(length=32), nullable=True),
        sa.Column("memo", sa.String(length=20), nullable=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(updated=False),
        sa.CheckConstraint("spotify_type in ('track','album','playlist')", name="ck_shelf_items_spotify_type"),
    )
    op.create_index("ix_shelf_items_shelf_position", "shelf_items", ["shelf_id", "position"])

    op.create_table(
        "friends",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("friend_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False, server_default="pending"),
        *_timestamps(),
        sa.CheckConstraint("status in ('pending','accepted','blocked')", name="ck_friends_status"),
        sa.UniqueConstraint("user_id", "friend_id", name="uq_friends_pair"),
    )
    op.create_index("ix_friends_friend_status", "friends", ["friend_id", "status"])

    op.create_table(
        "comments",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("shelf_item_id", sa.Uuid(as_uuid=True), sa.ForeignKey("shelf_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("length(content) <= 500", name="ck_comments_content_length"),
    )
    op.create_index("ix_comments_item_created", "comments", ["shelf_item_id", "created_at"])

    op.create_table(
        "likes",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("shelf_item_id", sa.Uuid(as_uuid=True), sa.ForeignKey("shelf_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("shelf_item_id", "user_id", name="uq_likes_item_user"),
    )

    op.create_table(
        "comment_likes",
        sa.Column("id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("comment_id", sa.Uuid(as_uuid=True), sa.ForeignKey("comments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_id", sa.Uuid(as_uuid=True), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint("comment_id", "user_id", name="uq_comment_likes_comment_user"),
    )


def downgrade():
    op.drop_table("comment_likes")
    op.drop_table("likes")
    op.drop_index("ix_comments_item_created", table_name="comments")
    op.drop_table("comments")
    op.drop_index("ix_friends_friend_status", table_name="friends")
    op.drop_table("friends")
    op.drop_index("ix_shelf_items_shelf_position", table_name="shelf_items")
    op.drop_table("shelf_items")
    op.drop_index("ix_shelves_user_sort", table_name="shelves")
    op.drop_table("shelves")
    op.drop_table("external_links")
    op.drop_table("users")
