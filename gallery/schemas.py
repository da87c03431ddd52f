"""Pydantic shapes of the gallery's CMS document types.

These mirror the studio schema (``portfolio``, ``artwork``, ``artist``,
``siteSettings``) closely enough to validate documents before they are
created and to audit an existing dataset.  Unknown fields are allowed.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from gallery.documents import SLUG_MAX_LENGTH
from gallery.models import ListingStatus, MediaType


class _CmsModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="allow")


# ---------------------------------------------------------------------------
# Field types
# ---------------------------------------------------------------------------

class Reference(_CmsModel):
    ref: str = Field(alias="_ref")
    type: str = Field(default="reference", alias="_type")
    weak: bool | None = Field(default=None, alias="_weak")


class Slug(_CmsModel):
    current: str
    type: str = Field(default="slug", alias="_type")

    @field_validator("current")
    @classmethod
    def _max_length(cls, value: str) -> str:
        if not value:
            raise ValueError("slug must not be empty")
        if len(value) > SLUG_MAX_LENGTH:
            raise ValueError(f"slug longer than {SLUG_MAX_LENGTH} characters")
        return value


class AssetField(_CmsModel):
    """An ``image`` or ``file`` field: a wrapper around an asset reference."""

    type: str = Field(default="image", alias="_type")
    asset: Reference | None = None


# ---------------------------------------------------------------------------
# Documents
# ---------------------------------------------------------------------------

class PortfolioDocument(_CmsModel):
    id: str | None = Field(default=None, alias="_id")
    type: str = Field(default="portfolio", alias="_type")
    title: str = Field(min_length=1)
    slug: Slug
    description: str | None = None
    coverImage: AssetField | None = None
    coverArtwork: Reference | None = None
    parentPortfolio: Reference | None = None
    subPortfolios: list[Reference] = Field(default_factory=list)
    year: str | None = None
    featured: bool | None = None
    publishedAt: str | None = None
    order: float | None = None
    listingStatus: ListingStatus | None = None


class ArtworkDocument(_CmsModel):
    id: str | None = Field(default=None, alias="_id")
    type: str = Field(default="artwork", alias="_type")
    displayTitle: bool = True
    title: str | None = None
    slug: Slug
    portfolio: Reference
    mediaType: MediaType
    image: AssetField | None = None
    lowResImage: AssetField | None = None
    video: AssetField | None = None
    videoThumbnail: AssetField | None = None
    videoUrl: str | None = None
    muxPlaybackId: str | None = None
    muxAssetId: str | None = None
    muxStatus: str | None = None
    pdfFile: AssetField | None = None
    pdfThumbnail: AssetField | None = None
    audioFile: AssetField | None = None
    audioThumbnail: AssetField | None = None
    description: str | None = None
    year: str | None = None
    dimensions: str | None = None
    medium: str | None = None
    tags: list[Reference] = Field(default_factory=list)
    order: float | None = None
    listingStatus: ListingStatus | None = None

    @field_validator("muxStatus")
    @classmethod
    def _mux_status(cls, value: str | None) -> str | None:
        if value is not None and value not in ("pending", "ready", "errored"):
            raise ValueError("muxStatus must be pending, ready or errored")
        return value

    @model_validator(mode="after")
    def _media_rules(self) -> "ArtworkDocument":
        if self.displayTitle and not self.title:
            raise ValueError('Title is required when "Display Title?" is enabled')
        if self.mediaType is MediaType.PDF and self.pdfFile is None:
            raise ValueError("PDF file is required when media type is PDF")
        if self.mediaType is MediaType.AUDIO and self.audioFile is None:
            raise ValueError("Audio file is required when media type is Audio")
        return self


class SocialMedia(_CmsModel):
    instagram: str | None = None
    twitter: str | None = None
    facebook: str | None = None
    linkedin: str | None = None
    youtube: str | None = None


class ArtistDocument(_CmsModel):
    id: str | None = Field(default=None, alias="_id")
    type: str = Field(default="artist", alias="_type")
    name: str = Field(min_length=1)
    slug: Slug
    profileImage: AssetField | None = None
    bio: list[dict[str, Any]] = Field(default_factory=list)
    email: str | None = None
    website: str | None = None
    socialMedia: SocialMedia | None = None
    cv: AssetField | None = None


class SiteSettingsDocument(_CmsModel):
    id: str | None = Field(default=None, alias="_id")
    type: str = Field(default="siteSettings", alias="_type")
    title: str | None = None
    description: str | None = None
    logo: AssetField | None = None
    artist: Reference
    featuredPortfolios: list[Reference] = Field(default_factory=list)
    heroImage: AssetField | None = None
    metaImage: AssetField | None = None


SCHEMAS: dict[str, type[_CmsModel]] = {
    "portfolio": PortfolioDocument,
    "artwork": ArtworkDocument,
    "artist": ArtistDocument,
    "siteSettings": SiteSettingsDocument,
}


def validate_document(body: dict[str, Any]) -> _CmsModel | None:
    """Validate *body* against its ``_type``.

    Returns ``None`` for types without a schema (assets, tags, ...).

    Raises:
        pydantic.ValidationError: The document does not match its schema.
    """
    schema = SCHEMAS.get(body.get("_type", ""))
    if schema is None:
        return None
    return schema.model_validate(body)


def validation_errors(body: dict[str, Any]) -> list[str]:
    """Human-readable problems with *body* (empty when it is valid)."""
    try:
        validate_document(body)
    except ValidationError as exc:
        return [
            f"{'.'.join(str(p) for p in err['loc']) or '<document>'}: {err['msg']}"
            for err in exc.errors()
        ]
    return []
