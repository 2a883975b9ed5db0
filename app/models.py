from tortoise import fields
from tortoise.models import Model


class TimestampedModel(Model):
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:  # type: ignore
        abstract = True


class Bde(TimestampedModel):
    uuid = fields.UUIDField(primary_key=True)
    name = fields.CharField(max_length=200)

    class Meta:  # type: ignore
        table = "bdes"


class User(TimestampedModel):
    uuid = fields.UUIDField(primary_key=True)
    email = fields.CharField(max_length=254, unique=True)
    password_hash = fields.CharField(max_length=128)
    firstname = fields.CharField(max_length=100)
    lastname = fields.CharField(max_length=100)
    bde: fields.ForeignKeyRelation[Bde] = fields.ForeignKeyField(
        "models.Bde", related_name="users", on_delete=fields.RESTRICT
    )
    permission_names = fields.JSONField(default=list)  # list of permission names

    class Meta:  # type: ignore
        table = "users"


class Event(TimestampedModel):
    uuid = fields.UUIDField(primary_key=True)
    bde: fields.ForeignKeyRelation[Bde] = fields.ForeignKeyField(
        "models.Bde", related_name="events", on_delete=fields.CASCADE
    )
    name = fields.CharField(max_length=200)
    is_draft = fields.BooleanField(default=True)

    booking_start = fields.DatetimeField(null=True)
    booking_end = fields.DatetimeField(null=True)
    event_date = fields.DatetimeField(null=True)

    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:  # type: ignore
        table = "events"
        ordering = ["-created_at"]


class Booking(TimestampedModel):
    id = fields.IntField(primary_key=True)
    event: fields.ForeignKeyRelation[Event] = fields.ForeignKeyField(
        "models.Event", related_name="bookings", on_delete=fields.CASCADE
    )
    user: fields.ForeignKeyRelation[User] = fields.ForeignKeyField(
        "models.User", related_name="bookings", on_delete=fields.CASCADE
    )

    class Meta:  # type: ignore
        table = "bookings"
        unique_together = (("event", "user"),)
        ordering = ["-created_at"]
