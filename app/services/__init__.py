"""
Services package for the ID PASS Lite card issuance service
"""

from .card_issuer import CardIssuer, create_card_issuer
from .card_encoder import CardEncoder, KeyStore, Card
from .image_service import image_service

__all__ = [
    "CardIssuer",
    "create_card_issuer",
    "CardEncoder",
    "KeyStore",
    "Card",
    "image_service"
]
