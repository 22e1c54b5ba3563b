import sqlalchemy as sa

from aqmonitor.models import NATURAL_KEY

metadata = sa.MetaData()

# BIGINT does not autoincrement on SQLite, which the test suite runs against
SurrogateKey = sa.BigInteger().with_variant(sa.Integer(), "sqlite")

measurements = sa.Table(
    "measurements",
    metadata,
    sa.Column("id", SurrogateKey, primary_key=True, autoincrement=True),
    sa.Column("location_id", sa.BigInteger, nullable=False),
    sa.Column("location_name", sa.Text, nullable=False),
    sa.Column("parameter", sa.String(16), nullable=False),
    sa.Column("value", sa.Float, nullable=False),
    sa.Column("unit", sa.String(32), nullable=False),
    sa.Column("date_utc", sa.DateTime(timezone=True), nullable=False),
    sa.Column("date_local", sa.Text, nullable=False),
    sa.Column("country", sa.String(2), nullable=False),
    sa.Column("city", sa.Text, nullable=True),
    sa.Column("latitude", sa.Float, nullable=True),
    sa.Column("longitude", sa.Float, nullable=True),
    sa.Column(
        "created_at",
        sa.DateTime(timezone=True),
        nullable=False,
        server_default=sa.func.current_timestamp(),
    ),
    sa.UniqueConstraint(*NATURAL_KEY, name="uq_measurements_natural_key"),
    sa.Index("idx_measurements_country", "country"),
    sa.Index("idx_measurements_parameter", "parameter"),
    sa.Index("idx_measurements_date_utc", "date_utc"),
)
