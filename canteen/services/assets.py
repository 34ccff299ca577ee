from typing import Optional, TypeVar

from canteen.core.config import ASSET_PUBLIC_BASE_URL

T = TypeVar("T")


def item_pic_key(item_id: int) -> str:
    return f"items/{item_id}"


class AssetPresigner:
    """
    Turns an object-store key into a link clients can fetch.

    The default builds a public URL under ASSET_PUBLIC_BASE_URL; a deployment
    backed by a private bucket swaps in a subclass that returns signed URLs.
    """

    def __init__(self, base_url: Optional[str] = ASSET_PUBLIC_BASE_URL):
        self.base_url = base_url.rstrip("/") if base_url else None

    def presign(self, key: str) -> Optional[str]:
        if not self.base_url:
            return None
        return f"{self.base_url}/{key.lstrip('/')}"


default_presigner = AssetPresigner()


def enrich_pic(dto: T, has_pic: bool, key: str, presigner: Optional[AssetPresigner] = None) -> T:
    """Fills dto.pic_link when the source row carries a picture; leaves it untouched otherwise."""
    if has_pic:
        dto.pic_link = (presigner or default_presigner).presign(key)
    return dto
