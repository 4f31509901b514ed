"""Partner, fulfillment and marketplace tables"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op

import models


def upgrade() -> None:
    models.db.metadata.create_all(bind=op.get_bind())


def downgrade() -> None:
    models.db.metadata.drop_all(bind=op.get_bind())
