from tortoise import fields, models

from canteen.models.enums import TimeBand


class Hold(models.Model):
    """
    A time-bounded reservation. Stock for its items has already been decremented;
    the row disappears on confirm, owner release or expiry sweep.
    """
    id = fields.IntField(primary_key=True)
    user = fields.ForeignKeyField("models.User", related_name="holds")
    canteen = fields.ForeignKeyField("models.Canteen", related_name="holds")
    total_price = fields.IntField()
    deliver_at = fields.CharEnumField(TimeBand, null=True)
    expires_at = fields.DatetimeField()
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "held_orders"
        indexes = [
            ("expires_at",),  # Sweeper scans
            ("user_id",),
        ]


class HoldItem(models.Model):
    id = fields.IntField(primary_key=True)
    hold = fields.ForeignKeyField("models.Hold", related_name="items", on_delete=fields.CASCADE)
    item = fields.ForeignKeyField("models.MenuItem", related_name="held_items")
    quantity = fields.SmallIntField()
    unit_price = fields.IntField()  # frozen at hold time

    class Meta:
        table = "held_order_items"
        unique_together = (("hold_id", "item_id"),)
