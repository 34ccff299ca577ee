from typing import Optional

from canteen.models.user import User


async def upsert_user(
    external_id: str,
    email: Optional[str] = None,
    display_name: Optional[str] = None,
    photo_url: Optional[str] = None,
    email_verified: bool = False,
) -> User:
    """
    Creates or refreshes the local row for a federated identity.
    The internal id is kept across token renewals; profile fields follow the latest token.
    """
    user, _ = await User.update_or_create(
        external_id=external_id,
        defaults={
            "email": email,
            "display_name": display_name,
            "photo_url": photo_url,
            "email_verified": email_verified,
        },
    )
    return user


async def find_user_id_by_rfid(rfid: str) -> Optional[int]:
    user = await User.get_or_none(rfid=rfid)
    return user.id if user else None
