from tortoise import fields, models


class User(models.Model):
    id = fields.IntField(primary_key=True)
    # Stable id from the federated identity provider (token "sub")
    external_id = fields.CharField(max_length=128, unique=True)
    email = fields.CharField(max_length=255, null=True)
    display_name = fields.CharField(max_length=255, null=True)
    photo_url = fields.CharField(max_length=1024, null=True)
    email_verified = fields.BooleanField(default=False)
    # Campus card tag, used for counter lookups
    rfid = fields.CharField(max_length=64, null=True, unique=True)
    created_at = fields.DatetimeField(auto_now_add=True)

    class Meta:
        table = "users"
