"""
ID PASS Lite Card Encoder - CBOR/zlib Implementation
Builds signed identity cards and renders them as QR codes

Card layout:
- Public section with the configured visible fields only
- Private section (all fields, PIN, card-ready photo) sealed with AES-GCM
- Ed25519 signature over the CBOR payload
- zlib compression of the signed envelope, QR byte mode with ECC level L
"""

import hmac
import io
import os
import zlib
import logging
from pathlib import Path
from typing import Dict, Any, Optional, List

import cbor2
import qrcode
import qrcode.image.svg
from qrcode.exceptions import DataOverflowError
from cryptography.exceptions import InvalidSignature, InvalidTag
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from cryptography.hazmat.primitives.serialization import pkcs12

from app.core.exceptions import EncodingError, CardDecodingError, ImageDecodeError
from app.schemas.identity import IdentityRecord
from app.services.image_service import image_service

logger = logging.getLogger(__name__)


class KeyStore:
    """Signing and encryption keys for one card issuer"""

    ENCRYPTION_KEY_BYTES = 32

    def __init__(self, store_prefix: str, signing_key: Ed25519PrivateKey, encryption_key: bytes):
        self.store_prefix = store_prefix
        self.signing_key = signing_key
        self.encryption_key = encryption_key

    @property
    def verification_key(self) -> Ed25519PublicKey:
        return self.signing_key.public_key()

    @classmethod
    def _derive_encryption_key(cls, signing_key: Ed25519PrivateKey, store_prefix: str, key_password: str) -> bytes:
        """Derive the AES key from the signing seed, salted by the key password"""
        seed = signing_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption()
        )
        hkdf = HKDF(
            algorithm=hashes.SHA256(),
            length=cls.ENCRYPTION_KEY_BYTES,
            salt=key_password.encode("utf-8"),
            info=store_prefix.encode("utf-8"),
        )
        return hkdf.derive(seed)

    @classmethod
    def load(cls, p12_data: bytes, store_prefix: str, store_password: str, key_password: str) -> "KeyStore":
        """
        Load a PKCS#12 key store holding an Ed25519 signing key

        Raises:
            EncodingError: unreadable store, wrong password or unsupported key type
        """
        try:
            private_key, _certificate, _additional = pkcs12.load_key_and_certificates(
                p12_data, store_password.encode("utf-8") if store_password else None
            )
        except ValueError as e:
            raise EncodingError(f"Cannot open key store '{store_prefix}': {e}") from e

        if not isinstance(private_key, Ed25519PrivateKey):
            raise EncodingError(
                f"Key store '{store_prefix}' must hold an Ed25519 key, found {type(private_key).__name__}"
            )

        encryption_key = cls._derive_encryption_key(private_key, store_prefix, key_password)
        logger.info(f"Loaded key store '{store_prefix}'")
        return cls(store_prefix, private_key, encryption_key)

    @classmethod
    def from_file(cls, path: Path, store_prefix: str, store_password: str, key_password: str) -> "KeyStore":
        try:
            p12_data = Path(path).read_bytes()
        except OSError as e:
            raise EncodingError(f"Cannot read key store {path}: {e}") from e
        return cls.load(p12_data, store_prefix, store_password, key_password)

    @classmethod
    def generate(cls, store_prefix: str, key_password: str = "") -> "KeyStore":
        """Create an ephemeral key store (development and tests)"""
        private_key = Ed25519PrivateKey.generate()
        encryption_key = cls._derive_encryption_key(private_key, store_prefix, key_password)
        logger.warning(f"Generated ephemeral key store '{store_prefix}' - cards will not verify after restart")
        return cls(store_prefix, private_key, encryption_key)

    def to_pkcs12(self, store_password: str) -> bytes:
        """Serialize the signing key as a PKCS#12 store"""
        return pkcs12.serialize_key_and_certificates(
            name=self.store_prefix.encode("utf-8"),
            key=self.signing_key,
            cert=None,
            cas=None,
            encryption_algorithm=serialization.BestAvailableEncryption(store_password.encode("utf-8"))
        )


class Card:
    """Encoded card payload with its QR code renderings"""

    QR_CONFIG = {
        'error_correction': qrcode.constants.ERROR_CORRECT_L,
        'box_size': 4,
        'border': 4,
    }

    def __init__(self, payload: bytes, details: Dict[str, Any]):
        self.payload = payload
        self.details = details

    def _qr(self) -> qrcode.QRCode:
        qr = qrcode.QRCode(
            version=None,
            error_correction=self.QR_CONFIG['error_correction'],
            box_size=self.QR_CONFIG['box_size'],
            border=self.QR_CONFIG['border'],
        )
        qr.add_data(self.payload)
        try:
            qr.make(fit=True)
        except (DataOverflowError, ValueError) as e:
            # qrcode 8 reports overflow as ValueError("Invalid version ...")
            raise EncodingError(f"Card payload of {len(self.payload)} bytes exceeds QR code capacity") from e
        return qr

    def as_qr_code_png(self) -> bytes:
        """Render the card as a PNG QR code"""
        img = self._qr().make_image(fill_color="black", back_color="white")
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return buffer.getvalue()

    def as_qr_code_svg(self) -> bytes:
        """Render the card as an SVG QR code"""
        img = self._qr().make_image(image_factory=qrcode.image.svg.SvgPathImage)
        return img.to_string(encoding="UTF-8")


class CardEncoder:
    """Service for encoding identity records into signed cards"""

    CARD_VERSION = 1
    NONCE_BYTES = 12

    def __init__(self, key_store: KeyStore, visible_fields: Optional[List[str]] = None):
        self.key_store = key_store
        self.visible_fields = list(visible_fields or [])

    def new_card(self, record: IdentityRecord) -> Card:
        """
        Encode an identity record into a signed card

        Raises:
            EncodingError: the record cannot be encoded
        """
        details = record.details()
        public = {key: value for key, value in details.items() if key in self.visible_fields}

        photo = None
        if record.photo:
            try:
                photo = image_service.create_card_thumbnail(record.photo)
            except ImageDecodeError as e:
                raise EncodingError(f"Cannot prepare card photo: {e}") from e

        private = {
            "details": details,
            "pin": record.pin,
            "photo": photo,
        }

        try:
            kid = self.key_store.store_prefix.encode("utf-8")
            nonce = os.urandom(self.NONCE_BYTES)
            sealed = nonce + AESGCM(self.key_store.encryption_key).encrypt(nonce, cbor2.dumps(private), kid)

            signed = cbor2.dumps({
                "v": self.CARD_VERSION,
                "kid": self.key_store.store_prefix,
                "pub": public,
                "priv": sealed,
            })
            signature = self.key_store.signing_key.sign(signed)
            payload = zlib.compress(cbor2.dumps({"p": signed, "s": signature}), 9)
        except (cbor2.CBOREncodeError, TypeError, ValueError) as e:
            raise EncodingError(f"Failed to encode card for UIN {record.uin}: {e}") from e

        logger.info(
            f"Card encoded for UIN {record.uin}: public fields={sorted(public)}, "
            f"photo={len(photo) if photo else 0}B, payload={len(payload)}B"
        )
        return Card(payload, public)

    def _open(self, payload: bytes) -> Dict[str, Any]:
        """Decompress, parse and verify a card payload"""
        try:
            envelope = cbor2.loads(zlib.decompress(payload))
            signed, signature = envelope["p"], envelope["s"]
            self.key_store.verification_key.verify(signature, signed)
            card = cbor2.loads(signed)
        except InvalidSignature as e:
            raise CardDecodingError("Card signature does not verify") from e
        except (zlib.error, cbor2.CBORDecodeError, KeyError, TypeError, ValueError) as e:
            raise CardDecodingError(f"Invalid card payload: {e}") from e

        if not isinstance(card, dict):
            raise CardDecodingError("Invalid card payload: not a map")
        if card.get("v") != self.CARD_VERSION:
            raise CardDecodingError(f"Unsupported card version: {card.get('v')}")
        if card.get("kid") != self.key_store.store_prefix:
            raise CardDecodingError(f"Card issued by unknown key store '{card.get('kid')}'")
        return card

    def read_card(self, payload: bytes) -> Dict[str, Any]:
        """Verify a card and return its public details"""
        return dict(self._open(payload)["pub"])

    def authenticate(self, payload: bytes, pin: str) -> Dict[str, Any]:
        """
        Verify a card and unlock its private section with the PIN

        Returns:
            Dict with 'details' and 'photo' (card-ready JPEG bytes or None)
        """
        card = self._open(payload)
        sealed = card["priv"]
        nonce, ciphertext = sealed[:self.NONCE_BYTES], sealed[self.NONCE_BYTES:]
        try:
            private = cbor2.loads(
                AESGCM(self.key_store.encryption_key).decrypt(nonce, ciphertext, card["kid"].encode("utf-8"))
            )
        except InvalidTag as e:
            raise CardDecodingError("Card private section cannot be decrypted") from e

        if not hmac.compare_digest(str(private["pin"]).encode("utf-8"), str(pin).encode("utf-8")):
            raise CardDecodingError("PIN code does not match")

        return {"details": private["details"], "photo": private["photo"]}
