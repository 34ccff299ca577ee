from tortoise import fields, models

from canteen.models.enums import TimeBand


class ActiveOrder(models.Model):
    id = fields.IntField(primary_key=True)
    user = fields.ForeignKeyField("models.User", related_name="active_orders")
    canteen = fields.ForeignKeyField("models.Canteen", related_name="active_orders")
    total_price = fields.IntField()
    deliver_at = fields.CharEnumField(TimeBand, null=True)
    ordered_at = fields.DatetimeField()

    class Meta:
        table = "active_orders"
        indexes = [
            ("canteen_id",),  # Operator dashboards
            ("user_id",),     # QR ownership checks
        ]


class ActiveOrderItem(models.Model):
    id = fields.IntField(primary_key=True)
    order = fields.ForeignKeyField("models.ActiveOrder", related_name="items", on_delete=fields.CASCADE)
    item = fields.ForeignKeyField("models.MenuItem", related_name="active_order_items")
    quantity = fields.SmallIntField()
    unit_price_frozen = fields.IntField()

    class Meta:
        table = "active_order_items"
        unique_together = (("order_id", "item_id"),)


class PastOrder(models.Model):
    """Terminal record of an order. The id is carried over from the active order."""
    id = fields.IntField(primary_key=True, generated=False)
    user = fields.ForeignKeyField("models.User", related_name="past_orders")
    canteen = fields.ForeignKeyField("models.Canteen", related_name="past_orders")
    total_price = fields.IntField()
    deliver_at = fields.CharEnumField(TimeBand, null=True)
    order_status = fields.BooleanField()  # True = delivered, False = cancelled
    ordered_at = fields.DatetimeField()
    finalized_at = fields.DatetimeField()

    class Meta:
        table = "past_orders"
        indexes = [
            ("user_id",),                # User order history
            ("user_id", "ordered_at"),   # Composite: history sorted by time
        ]


class PastOrderItem(models.Model):
    id = fields.IntField(primary_key=True)
    order = fields.ForeignKeyField("models.PastOrder", related_name="items", on_delete=fields.CASCADE)
    item = fields.ForeignKeyField("models.MenuItem", related_name="past_order_items")
    quantity = fields.SmallIntField()
    unit_price_frozen = fields.IntField()

    class Meta:
        table = "past_order_items"
        unique_together = (("order_id", "item_id"),)
