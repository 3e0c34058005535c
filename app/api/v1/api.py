"""
Main API Router for the card issuance service v1
"""

from fastapi import APIRouter

from app.api.v1.endpoints import cards

api_router = APIRouter()

api_router.include_router(cards.router, prefix="/cards", tags=["Cards"])
