from tortoise import fields, models


class Canteen(models.Model):
    id = fields.IntField(primary_key=True)
    name = fields.CharField(max_length=255)
    location = fields.CharField(max_length=255)
    # Operator credentials; password holds a salted passlib hash, never plaintext
    username = fields.CharField(max_length=128, unique=True)
    password = fields.CharField(max_length=255)

    class Meta:
        table = "canteens"


class MenuItem(models.Model):
    id = fields.IntField(primary_key=True)
    canteen = fields.ForeignKeyField("models.Canteen", related_name="menu_items")
    name = fields.CharField(max_length=120)
    is_veg = fields.BooleanField(default=True)
    price = fields.IntField()  # minor units
    stock = fields.IntField(default=-1)  # -1 = unlimited
    is_available = fields.BooleanField(default=True)
    description = fields.CharField(max_length=500, null=True)
    has_pic = fields.BooleanField(default=False)
    pic_etag = fields.CharField(max_length=128, null=True)

    class Meta:
        table = "menu_items"
        indexes = [
            ("canteen_id",),                 # Canteen menu queries
            ("canteen_id", "is_available"),  # Composite: canteen's orderable items
        ]
