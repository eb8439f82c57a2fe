from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class InfoPayload(BaseModel):
    """Identity of the machine and its owner, as answered by ``get/info``."""

    ownerKey: str | None = None
    ownerUserName: str | None = None
    ownerDisplayName: str | None = None
    scriptName: str | None = None
    price: int = 0
    extra: dict[str, Any] = Field(default_factory=dict)
    itemCount: int = Field(default=0, ge=0)
    payoutCount: int = Field(default=0, ge=0)
    inventoryCount: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="allow")


class ConfigPayload(BaseModel):
    """Monetary configuration. Untyped beyond what the machine always sends."""

    payPrice: int | None = None
    maxPerPurchase: int | None = None
    maxBuys: int | None = None

    model_config = ConfigDict(extra="allow")


class PayoutPayload(BaseModel):
    agentKey: str = Field(min_length=1)
    displayName: str | None = None
    userName: str | None = None
    amount: int = 0

    model_config = ConfigDict(extra="allow")


class ItemPayload(BaseModel):
    name: str = Field(min_length=1)
    type: int | None = None
    rarity: float = Field(default=0, ge=0)
    limit: int = -1
    bought: int = Field(default=0, ge=0)

    model_config = ConfigDict(extra="allow")


class InventoryPayload(BaseModel):
    name: str = Field(min_length=1)
    type: int | None = None
    creator: str | None = None
    owner: str | None = None
    permissions: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(extra="allow")
