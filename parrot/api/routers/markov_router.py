from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel, Field
from typing import List, Literal

from parrot.config import settings
from parrot.services import markov
from parrot.services.chain_cache import get_chain_cache
from parrot.services.markov import InputTooShortError, MarkovChain
from parrot.services.message_store import get_store

router = APIRouter(prefix="/markov", tags=["markov"])


class GenerateRequest(BaseModel):
    user_ids: List[str] = Field(..., min_length=1, description="Users whose messages train the chain")
    mode: Literal["one", "many"] = "many"


def _load_chain(user_ids: List[str]) -> MarkovChain:
    try:
        chain = get_chain_cache().get_or_load(
            user_ids, lambda ids: markov.load(ids, get_store())
        )
    except InputTooShortError as e:
        raise HTTPException(status_code=400, detail=str(e))
    if chain.is_empty:
        raise HTTPException(status_code=404, detail="no training data for these users")
    return chain


@router.post("/generate")
async def generate(req: GenerateRequest):
    chain = _load_chain(req.user_ids)
    if req.mode == "one":
        text = chain.generate_one()
    else:
        text = chain.generate_many(
            min_sentences=settings.MARKOV_MIN_SENTENCES,
            max_sentences=settings.MARKOV_MAX_SENTENCES,
        )
    return {"ok": True, "data": {"text": text, "user_ids": sorted(set(req.user_ids))}}


@router.get("/stats")
async def stats(user_ids: List[str] = Query(...)):
    chain = _load_chain(user_ids)
    return {"ok": True, "data": {"user_ids": sorted(set(user_ids)), **chain.stats()}}
