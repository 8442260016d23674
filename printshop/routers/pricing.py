"""
FastAPI router for price quotes.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from common.utils import success_response
from printshop.dependencies import CurrentMember, get_pricing_service
from printshop.schemas.pricing import QuoteRequest
from printshop.services.resources.pricing_service import PricingService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post("/quote")
async def calculate_quote(
    body: QuoteRequest,
    member: CurrentMember,
    pricing_service: Annotated[PricingService, Depends(get_pricing_service)],
):
    """Price a job against current inventory. Any member."""
    quote = await pricing_service.calculate(member, **body.to_service_args())
    return success_response(quote.to_dict())


@router.post("/projects/{project_id}/quote")
async def save_project_quote(
    project_id: str,
    body: QuoteRequest,
    member: CurrentMember,
    pricing_service: Annotated[PricingService, Depends(get_pricing_service)],
):
    """Price a project and store the result on it. Editor and above."""
    result = await pricing_service.save_project_quote(member, project_id, **body.to_service_args())
    return success_response(result, message="Quote saved")
