import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from backend.models.schemas import CostRequest, CostResponse
from backend.services.cost_calculator import CostCalculator
from backend.services.tokenizer import TokenizerError
from backend.dependencies import get_cost_calculator

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/cost", tags=["costs"])


@router.post("", response_model=CostResponse)
async def compute_cost(
    request: Request,
    calculator: CostCalculator = Depends(get_cost_calculator),
):
    """Tokenize and price one assistant reply.

    The body is parsed by hand so that a malformed payload is reported the
    same way as a tokenizer failure: as a 500, never as a zero-cost result.
    """
    try:
        payload = await request.json()
        if not isinstance(payload, dict):
            raise ValueError("Cost payload must be a JSON object")
        body = CostRequest.model_validate(payload)

        result = calculator.compute_cost(
            model_id=body.model.id,
            prior_messages=[m.model_dump() for m in body.messages],
            system_prompt=body.prompt,
            assistant_message=body.assistant_message,
        )
    except (ValueError, TokenizerError) as exc:
        logger.exception("Cost computation failed")
        raise HTTPException(status_code=500, detail=str(exc) or "Error")

    return result.to_dict()
