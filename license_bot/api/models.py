"""Story asset API response dataclasses.

WHY: The asset API returns deeply nested JSON where almost every object
and field is optional. Typed dataclasses make the shape explicit and give
the rest of the bot one place that knows the JSON field names.

HOW: Each dataclass maps to one JSON object and has a ``from_dict``
factory. Nested objects are parsed recursively; absent objects become
None, absent strings become "", absent booleans become False.
Timestamps are parsed into timezone-aware datetimes.

RULES:
- from_dict never raises on missing keys; it raises TypeError/ValueError
  only when a present value has the wrong JSON type
- Large integers (block numbers, supplies) are kept as decimal strings
- attribution_required is not trusted from the API; the client derives it
- Records are snapshots fetched per request; nothing is cached
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def parse_timestamp(value: Any) -> datetime | None:
    """Parse an ISO8601 timestamp (``Z`` suffix accepted) into an aware datetime.

    Unparseable or empty values return None. Naive timestamps are taken
    as UTC.
    """
    if not value or not isinstance(value, str):
        return None
    text = value.strip()
    if text.endswith("Z") or text.endswith("z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _number_str(value: Any) -> str | None:
    """Render a JSON number (or numeric string) as a decimal string."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _obj(data: dict, key: str) -> dict | None:
    value = data.get(key)
    return value if isinstance(value, dict) else None


def _str(data: dict, key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _int(data: dict, key: str) -> int:
    value = data.get(key)
    if isinstance(value, bool) or value is None:
        return 0
    return int(value)


@dataclass
class MediaURL:
    """Image or animation entry of NFT metadata."""

    original_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> MediaURL:
        return cls(original_url=_str(data, "originalUrl"))


@dataclass
class ContractInfo:
    """Token contract descriptor."""

    name: str = ""
    symbol: str = ""
    address: str = ""
    total_supply: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> ContractInfo:
        return cls(
            name=_str(data, "name"),
            symbol=_str(data, "symbol"),
            address=_str(data, "address"),
            total_supply=_number_str(data.get("totalSupply")),
        )


@dataclass
class CollectionInfo:
    """Collection branding attached to an asset."""

    name: str = ""
    banner_image_url: str = ""
    slug: str = ""
    external_url: str = ""
    description: str = ""
    twitter_username: str = ""
    discord_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> CollectionInfo:
        return cls(
            name=_str(data, "name"),
            banner_image_url=_str(data, "bannerImageUrl"),
            slug=_str(data, "slug"),
            external_url=_str(data, "externalUrl"),
            description=_str(data, "description"),
            twitter_username=_str(data, "twitterUsername"),
            discord_url=_str(data, "discordUrl"),
        )


@dataclass
class NFTMint:
    """Mint record of the NFT that backs an asset.

    RULES:
    - last_updated_at is the metadata-level timestamp
    - time_last_updated is the system-level timestamp
    """

    mint_address: str = ""
    block_number: str | None = None
    timestamp: datetime | None = None
    transaction_hash: str = ""
    owner_address: str = ""
    last_updated_at: datetime | None = None
    time_last_updated: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> NFTMint:
        return cls(
            mint_address=_str(data, "mintAddress"),
            block_number=_number_str(data.get("blockNumber")),
            timestamp=parse_timestamp(data.get("timestamp")),
            transaction_hash=_str(data, "transactionHash"),
            owner_address=_str(data, "ownerAddress"),
            last_updated_at=parse_timestamp(data.get("lastUpdatedAt")),
            time_last_updated=parse_timestamp(data.get("timeLastUpdated")),
        )


@dataclass
class NFTMetadata:
    """Media and contract metadata of the NFT behind an asset."""

    media_type: str = ""
    image: MediaURL | None = None
    animation: MediaURL | None = None
    contract: ContractInfo | None = None
    collection: CollectionInfo | None = None
    original_url: str = ""
    external_url: str = ""
    mint: NFTMint | None = None
    time_last_updated: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> NFTMetadata:
        image = _obj(data, "image")
        animation = _obj(data, "animation")
        contract = _obj(data, "contract")
        collection = _obj(data, "collection")
        mint = _obj(data, "mint")
        return cls(
            media_type=_str(data, "mediaType"),
            image=MediaURL.from_dict(image) if image is not None else None,
            animation=MediaURL.from_dict(animation) if animation is not None else None,
            contract=ContractInfo.from_dict(contract) if contract is not None else None,
            collection=CollectionInfo.from_dict(collection) if collection is not None else None,
            original_url=_str(data, "originalUrl"),
            external_url=_str(data, "externalUrl"),
            mint=NFTMint.from_dict(mint) if mint is not None else None,
            time_last_updated=parse_timestamp(data.get("timeLastUpdated")),
        )


@dataclass
class LicenseTerms:
    """License flags and revenue share.

    commercial_rev_share is expressed in millionths of a whole
    (20_000_000 == 20%).
    """

    transferable: bool = False
    commercial_use: bool = False
    derivatives_allowed: bool = False
    derivatives_approval: bool = False
    commercial_rev_share: int = 0
    attribution_required: bool = False
    derivatives_attribution: bool = False
    commercial_attribution: bool = False

    @classmethod
    def from_dict(cls, data: dict) -> LicenseTerms:
        return cls(
            transferable=bool(data.get("transferable")),
            commercial_use=bool(data.get("commercialUse")),
            derivatives_allowed=bool(data.get("derivativesAllowed")),
            derivatives_approval=bool(data.get("derivativesApproval")),
            commercial_rev_share=_int(data, "commercialRevShare"),
            attribution_required=bool(data.get("attributionRequired")),
            derivatives_attribution=bool(data.get("derivativesAttribution")),
            commercial_attribution=bool(data.get("commercialAttribution")),
        )


@dataclass
class LicenseTermsWrapper:
    """A license template reference together with its terms."""

    template_name: str = ""
    template_metadata_uri: str = ""
    license_template_id: str = ""
    terms: LicenseTerms | None = None

    @classmethod
    def from_dict(cls, data: dict) -> LicenseTermsWrapper:
        terms = _obj(data, "terms")
        return cls(
            template_name=_str(data, "templateName"),
            template_metadata_uri=_str(data, "templateMetadataUri"),
            license_template_id=_str(data, "licenseTemplateId"),
            terms=LicenseTerms.from_dict(terms) if terms is not None else None,
        )


@dataclass
class InfringementStatus:
    """One infringement check performed by an external provider."""

    status: str = ""
    is_infringing: bool = False
    provider_name: str = ""
    provider_url: str = ""
    infringement_details: str = ""
    response_time: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_dict(cls, data: dict) -> InfringementStatus:
        return cls(
            status=_str(data, "status"),
            is_infringing=bool(data.get("isInfringing")),
            provider_name=_str(data, "providerName"),
            provider_url=_str(data, "providerURL"),
            infringement_details=_str(data, "infringementDetails"),
            response_time=parse_timestamp(data.get("responseTime")),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
        )


@dataclass
class ModerationStatus:
    """Likelihood strings per moderation category (e.g. "VERY_UNLIKELY")."""

    adult: str = ""
    spoof: str = ""
    medical: str = ""
    violence: str = ""
    racy: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> ModerationStatus:
        return cls(
            adult=_str(data, "adult"),
            spoof=_str(data, "spoof"),
            medical=_str(data, "medical"),
            violence=_str(data, "violence"),
            racy=_str(data, "racy"),
        )

    def categories(self) -> list[str]:
        return [self.adult, self.spoof, self.medical, self.violence, self.racy]


@dataclass
class IPAsset:
    """An IP asset record from POST /assets."""

    ip_id: str = ""
    ip_ids: list[str] = field(default_factory=list)
    title: str = ""
    description: str = ""
    owner_address: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    nft_metadata: NFTMetadata | None = None
    license_template: LicenseTermsWrapper | None = None
    licenses: list[LicenseTermsWrapper] = field(default_factory=list)
    infringement: list[InfringementStatus] = field(default_factory=list)
    moderation: ModerationStatus | None = None
    mint: NFTMint | None = None
    contract: ContractInfo | None = None
    collection: CollectionInfo | None = None
    token_contract: str = ""
    token_id: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> IPAsset:
        nft_metadata = _obj(data, "nftMetadata")
        license_template = _obj(data, "licenseTemplate")
        moderation = _obj(data, "moderationStatus")
        mint = _obj(data, "mint")
        contract = _obj(data, "contract")
        collection = _obj(data, "collection")
        return cls(
            ip_id=_str(data, "ipId"),
            ip_ids=[i for i in data.get("ipIds") or [] if isinstance(i, str)],
            title=_str(data, "title"),
            description=_str(data, "description"),
            owner_address=_str(data, "ownerAddress"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            nft_metadata=NFTMetadata.from_dict(nft_metadata) if nft_metadata is not None else None,
            license_template=(
                LicenseTermsWrapper.from_dict(license_template)
                if license_template is not None else None
            ),
            licenses=[LicenseTermsWrapper.from_dict(item) for item in data.get("licenses") or []],
            infringement=[
                InfringementStatus.from_dict(item)
                for item in data.get("infringementStatus") or []
            ],
            moderation=ModerationStatus.from_dict(moderation) if moderation is not None else None,
            mint=NFTMint.from_dict(mint) if mint is not None else None,
            contract=ContractInfo.from_dict(contract) if contract is not None else None,
            collection=CollectionInfo.from_dict(collection) if collection is not None else None,
            token_contract=_str(data, "tokenContract"),
            token_id=_number_str(data.get("tokenId")) or "",
        )


@dataclass
class CollectionMetadata:
    """Collection record from POST /collections."""

    address: str = ""
    name: str = ""
    symbol: str = ""
    total_supply: str | None = None
    token_type: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    banner_image_url: str = ""
    slug: str = ""
    external_url: str = ""
    description: str = ""
    twitter_username: str = ""
    discord_url: str = ""

    @classmethod
    def from_dict(cls, data: dict) -> CollectionMetadata:
        return cls(
            address=_str(data, "address"),
            name=_str(data, "name"),
            symbol=_str(data, "symbol"),
            total_supply=_number_str(data.get("totalSupply")),
            token_type=_str(data, "tokenType"),
            created_at=parse_timestamp(data.get("createdAt")),
            updated_at=parse_timestamp(data.get("updatedAt")),
            banner_image_url=_str(data, "bannerImageUrl"),
            slug=_str(data, "slug"),
            external_url=_str(data, "externalUrl"),
            description=_str(data, "description"),
            twitter_username=_str(data, "twitterUsername"),
            discord_url=_str(data, "discordUrl"),
        )


@dataclass
class CollectionItem:
    """One entry of the /collections response: metadata plus dispute counters."""

    metadata: CollectionMetadata | None = None
    raised_dispute_count: int = 0
    resolved_dispute_count: int = 0
    cancelled_dispute_count: int = 0
    judged_dispute_count: int = 0

    @classmethod
    def from_dict(cls, data: dict) -> CollectionItem:
        metadata = _obj(data, "collectionMetadata")
        return cls(
            metadata=CollectionMetadata.from_dict(metadata) if metadata is not None else None,
            raised_dispute_count=_int(data, "raisedDisputeCount"),
            resolved_dispute_count=_int(data, "resolvedDisputeCount"),
            cancelled_dispute_count=_int(data, "cancelledDisputeCount"),
            judged_dispute_count=_int(data, "judgedDisputeCount"),
        )
