from __future__ import annotations

"""
FastAPI application serving the recommender's batch output.

Read-only: recommendations come from the text file written by the last
pipeline phase, loaded once per process. Nothing is computed per request.
"""

from functools import lru_cache
from pathlib import Path
from typing import Dict, List, Optional

from fastapi import FastAPI, HTTPException, Query
from loguru import logger

from .config import HealthResponse, RECOMMENDATIONS_PATH, RecommendedItem, UserRecommendations
from .storage import read_recommendations


app = FastAPI(title="Item co-occurrence recommendations")


@lru_cache(maxsize=1)
def get_recommendations_store(path: Path = RECOMMENDATIONS_PATH) -> Dict[int, List[RecommendedItem]]:
    return read_recommendations(path)


def _store_or_503() -> Dict[int, List[RecommendedItem]]:
    try:
        return get_recommendations_store()
    except FileNotFoundError as e:
        logger.warning("Recommendations unavailable: {}", e)
        raise HTTPException(status_code=503, detail="Recommendations not computed yet")


@app.get("/health", response_model=HealthResponse)
def health() -> HealthResponse:
    store = _store_or_503()
    return HealthResponse(status="healthy", users=len(store))


@app.get("/recommendations/{user_id}", response_model=UserRecommendations)
def recommendations(user_id: int, n: Optional[int] = Query(None, ge=1)) -> UserRecommendations:
    store = _store_or_503()
    items = store.get(user_id)
    if items is None:
        raise HTTPException(status_code=404, detail=f"No recommendations for user {user_id}")
    if n is not None:
        items = items[:n]
    return UserRecommendations(user_id=user_id, recommended_items=items)
