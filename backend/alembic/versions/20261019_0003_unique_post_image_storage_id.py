"""Allow a stored image to back at most one post."""

from collections.abc import Sequence

from alembic import op

revision: str = "20261019_0003"
down_revision: str | None = "20261019_0002"
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None

IMAGE_STORAGE_ID_INDEX = "ix_posts_image_storage_id"


def upgrade() -> None:
    op.drop_index(IMAGE_STORAGE_ID_INDEX, table_name="posts")
    op.create_index(
        IMAGE_STORAGE_ID_INDEX,
        "posts",
        ["image_storage_id"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index(IMAGE_STORAGE_ID_INDEX, table_name="posts")
    op.create_index(
        IMAGE_STORAGE_ID_INDEX,
        "posts",
        ["image_storage_id"],
        unique=False,
    )
