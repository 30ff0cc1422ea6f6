"""Derived views over an IP asset record.

Content type and play link resolution for the license view, the target of
the license view's collection button, and the nested-vs-top-level
contract/collection lookup used by the license-collection view.
"""

from __future__ import annotations

from dataclasses import dataclass

from license_bot.api.models import CollectionInfo, ContractInfo, IPAsset, NFTMetadata
from license_bot.core.tokens import CollectionAction, LicenseAction, collection_token, license_token

CONTENT_IMAGE = "Image"
CONTENT_ANIMATION = "Animation"


def _has_image(meta: NFTMetadata) -> bool:
    return meta.image is not None and bool(meta.image.original_url)


def _has_animation(meta: NFTMetadata) -> bool:
    return meta.animation is not None and bool(meta.animation.original_url)


def content_type(meta: NFTMetadata | None) -> str:
    """Return "Image", "Animation", or "" for the asset's media.

    The declared media type wins when its URL is populated; otherwise the
    other kind is used, and with no declared type animation beats image.
    """
    if meta is None:
        return ""
    has_image = _has_image(meta)
    has_animation = _has_animation(meta)
    declared = meta.media_type.lower()
    if declared == "image":
        order = ((has_image, CONTENT_IMAGE), (has_animation, CONTENT_ANIMATION))
    else:
        order = ((has_animation, CONTENT_ANIMATION), (has_image, CONTENT_IMAGE))
    for present, kind in order:
        if present:
            return kind
    return ""


def play_link(meta: NFTMetadata | None, kind: str) -> str:
    """Resolve a media URL for ``kind`` via its fallback chain.

    Chain: the kind's own originalUrl, then metadata originalUrl, then
    metadata externalUrl.
    """
    if meta is None or not kind:
        return ""
    if kind == CONTENT_IMAGE and _has_image(meta):
        return meta.image.original_url
    if kind == CONTENT_ANIMATION and _has_animation(meta):
        return meta.animation.original_url
    return meta.original_url or meta.external_url


def resolve_contract(asset: IPAsset) -> ContractInfo | None:
    """nftMetadata.contract wins over the top-level contract."""
    if asset.nft_metadata is not None and asset.nft_metadata.contract is not None:
        return asset.nft_metadata.contract
    return asset.contract


def resolve_collection(asset: IPAsset) -> CollectionInfo | None:
    """nftMetadata.collection wins over the top-level collection."""
    if asset.nft_metadata is not None and asset.nft_metadata.collection is not None:
        return asset.nft_metadata.collection
    return asset.collection


@dataclass(frozen=True)
class ActionSpec:
    """One button of the license action row: locale key + encoded token."""

    label_key: str
    action_id: str
    primary: bool = False


def license_action_row(asset: IPAsset, ip_id: str, owner_id: str) -> list[ActionSpec]:
    """Build the Terms | Infringement | Moderation | Mint | Collection row.

    The collection button opens the collection by contract address when
    the asset has one, else falls back to the license-collection view.
    """
    if asset.contract is not None and asset.contract.address:
        collection_id = collection_token(CollectionAction.SHOW, asset.contract.address, owner_id)
    else:
        collection_id = license_token(LicenseAction.COLLECTION, ip_id, owner_id)
    return [
        ActionSpec("btn_terms", license_token(LicenseAction.TERMS, ip_id, owner_id), primary=True),
        ActionSpec("btn_infringement", license_token(LicenseAction.INFRINGEMENT, ip_id, owner_id)),
        ActionSpec("btn_moderation", license_token(LicenseAction.MODERATION, ip_id, owner_id)),
        ActionSpec("btn_mint", license_token(LicenseAction.MINT, ip_id, owner_id)),
        ActionSpec("btn_collection", collection_id),
    ]
