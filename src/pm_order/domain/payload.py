"""Order payload the wallet signs and the exchange receives.

Amounts are integer base units with 6 decimals for both collateral and
shares:
  BUY  → maker gives collateral floor(price*size*1e6), takes shares floor(size*1e6)
  SELL → maker gives shares, takes collateral
"""
import secrets
from dataclasses import asdict, dataclass
from decimal import ROUND_FLOOR, Decimal
from typing import Any

from src.pm_common.enums import OrderSide, SignatureType

AMOUNT_DECIMALS = 6
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_SCALE = Decimal(10) ** AMOUNT_DECIMALS

EXCHANGE_DOMAIN_NAME = "Polymarket CTF Exchange"
EXCHANGE_DOMAIN_VERSION = "1"

ORDER_TYPES: dict[str, list[dict[str, str]]] = {
    "Order": [
        {"name": "salt", "type": "uint256"},
        {"name": "maker", "type": "address"},
        {"name": "signer", "type": "address"},
        {"name": "taker", "type": "address"},
        {"name": "tokenId", "type": "uint256"},
        {"name": "makerAmount", "type": "uint256"},
        {"name": "takerAmount", "type": "uint256"},
        {"name": "expiration", "type": "uint256"},
        {"name": "nonce", "type": "uint256"},
        {"name": "feeRateBps", "type": "uint256"},
        {"name": "side", "type": "uint8"},
        {"name": "signatureType", "type": "uint8"},
    ],
}


def _base_units(amount: Decimal) -> int:
    return int((amount * _SCALE).to_integral_value(rounding=ROUND_FLOOR))


def compute_amounts(price: Decimal, size: Decimal, side: OrderSide) -> tuple[int, int]:
    """(maker_amount, taker_amount) in base units."""
    collateral = _base_units(price * size)
    shares = _base_units(size)
    if side == OrderSide.BUY:
        return collateral, shares
    return shares, collateral


def generate_salt() -> str:
    return "0x" + secrets.token_hex(32)


@dataclass(frozen=True)
class UnsignedOrder:
    salt: str
    maker: str
    signer: str
    taker: str
    token_id: str
    maker_amount: int
    taker_amount: int
    expiration: int
    nonce: int
    fee_rate_bps: int
    side: OrderSide
    signature_type: SignatureType = SignatureType.EOA
    neg_risk: bool = False

    def typed_data(self, chain_id: int, verifying_contract: str) -> dict[str, Any]:
        """EIP-712 structure handed to the wallet for signing."""
        return {
            "domain": {
                "name": EXCHANGE_DOMAIN_NAME,
                "version": EXCHANGE_DOMAIN_VERSION,
                "chainId": chain_id,
                "verifyingContract": verifying_contract,
            },
            "types": ORDER_TYPES,
            "primaryType": "Order",
            "message": {
                "salt": int(self.salt, 16),
                "maker": self.maker,
                "signer": self.signer,
                "taker": self.taker,
                "tokenId": int(self.token_id),
                "makerAmount": self.maker_amount,
                "takerAmount": self.taker_amount,
                "expiration": self.expiration,
                "nonce": self.nonce,
                "feeRateBps": self.fee_rate_bps,
                "side": 0 if self.side == OrderSide.BUY else 1,
                "signatureType": int(self.signature_type),
            },
        }

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["side"] = self.side.value
        data["signature_type"] = int(self.signature_type)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UnsignedOrder":
        return cls(
            salt=str(data["salt"]),
            maker=str(data["maker"]),
            signer=str(data["signer"]),
            taker=str(data.get("taker", ZERO_ADDRESS)),
            token_id=str(data["token_id"]),
            maker_amount=int(data["maker_amount"]),
            taker_amount=int(data["taker_amount"]),
            expiration=int(data["expiration"]),
            nonce=int(data["nonce"]),
            fee_rate_bps=int(data.get("fee_rate_bps", 0)),
            side=OrderSide(data["side"]),
            signature_type=SignatureType(int(data.get("signature_type", 0))),
            neg_risk=bool(data.get("neg_risk", False)),
        )


@dataclass(frozen=True)
class SignedOrder:
    order: UnsignedOrder
    signature: str

    def to_wire(self) -> dict[str, Any]:
        """Exchange JSON shape: camelCase, integers as strings."""
        o = self.order
        return {
            "salt": o.salt,
            "maker": o.maker,
            "signer": o.signer,
            "taker": o.taker,
            "tokenId": o.token_id,
            "makerAmount": str(o.maker_amount),
            "takerAmount": str(o.taker_amount),
            "expiration": str(o.expiration),
            "nonce": str(o.nonce),
            "feeRateBps": str(o.fee_rate_bps),
            "side": o.side.value,
            "signatureType": str(int(o.signature_type)),
            "signature": self.signature,
        }


def build_order_payload(
    *,
    token_id: str,
    side: OrderSide,
    price: Decimal,
    size: Decimal,
    maker: str,
    expiration: int,
    nonce: int,
    fee_rate_bps: int = 0,
    neg_risk: bool = False,
    salt: str | None = None,
) -> UnsignedOrder:
    maker_amount, taker_amount = compute_amounts(price, size, side)
    return UnsignedOrder(
        salt=salt or generate_salt(),
        maker=maker,
        signer=maker,
        taker=ZERO_ADDRESS,
        token_id=token_id,
        maker_amount=maker_amount,
        taker_amount=taker_amount,
        expiration=expiration,
        nonce=nonce,
        fee_rate_bps=fee_rate_bps,
        side=side,
        neg_risk=neg_risk,
    )
