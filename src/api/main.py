# src/api/main.py
"""
The FastAPI application for the Board Game Recommender.

It exposes the endpoints used by the Streamlit UI:
- /api/identify: runs the photo through the vision and canonicalization models.
- /api/recommendation: streams markdown recommendations as server-sent events.

The model provider key lives only in the server configuration and is never
sent to the browser.
"""

import json
import logging
from typing import List

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import ValidationError
from fastapi.concurrency import run_in_threadpool

from src.core.identification import IdentificationPipeline
from src.core.recommender import RecommendationStreamProducer
from src.core.sse import SSE_HEADERS, frame_events
from src.models.schemas import (
    IdentifiedGame,
    IdentifyRequest,
    RecommendationRequest,
    format_validation_errors,
)
from src.utils.config_loader import get_config

# --- Logging Configuration ---
logging.basicConfig(level=logging.INFO, format='%(asctime)s [%(levelname)-8s] [%(module)-20s] %(message)s')


# --- FastAPI Application Initialization ---
app = FastAPI(
    title="Board Game Recommender API",
    description="Identifies games in a collection photo and streams recommendations.",
    version="1.0.0"
)


# --- Startup Event: Build the model clients ---
# Tests attach their own stubs to app.state before the first request, in which
# case nothing is replaced here.
@app.on_event("startup")
def startup_event():
    logging.info("--- Starting API Server ---")
    try:
        config = get_config()
        if getattr(app.state, "identification_pipeline", None) is None:
            app.state.identification_pipeline = IdentificationPipeline.from_config(config)
        if getattr(app.state, "recommendation_producer", None) is None:
            app.state.recommendation_producer = RecommendationStreamProducer.from_config(config)
        logging.info("✅ Model clients initialized successfully.")
    except Exception as e:
        logging.exception(f"FATAL: Could not initialize the model clients during startup: {e}")
        raise


def validation_error_response(details: List[str]) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid input data provided.", "details": details},
    )


async def read_json_body(request: Request):
    """Returns the decoded JSON body, or raises ValueError for malformed JSON."""
    raw_body = await request.body()
    try:
        return json.loads(raw_body or b"null")
    except json.JSONDecodeError as e:
        raise ValueError(f"body: Invalid JSON ({e.msg})") from e


# --- API Endpoints ---

@app.get("/", tags=["Health Check"])
def read_root():
    """A simple health check endpoint to confirm the server is running."""
    return {"status": "Board Game Recommender API is online"}


@app.post("/api/identify", response_model=List[IdentifiedGame], tags=["Identification"])
async def identify_games(request: Request):
    """
    Identifies the board games in a photo given as a data URL. Upstream model
    failures degrade to an empty list instead of an error response.
    """
    try:
        payload = IdentifyRequest.model_validate(await read_json_body(request))
    except ValueError as e:
        details = format_validation_errors(e) if isinstance(e, ValidationError) else [str(e)]
        return validation_error_response(details)

    pipeline: IdentificationPipeline = request.app.state.identification_pipeline
    # the pipeline makes blocking HTTP calls
    result = await run_in_threadpool(pipeline.run, payload.imageDataUrl)
    return [game.model_dump() for game in result.games.value]


@app.post("/api/recommendation", tags=["Recommendation"])
async def recommend_games(request: Request):
    """
    Streams recommendations as `data: {"type": "text", "text": ...}` frames,
    ending with `data: [DONE]`.
    """
    try:
        payload = RecommendationRequest.model_validate(await read_json_body(request))
    except ValidationError as e:
        logging.warning(f"Rejected recommendation request: {e.error_count()} invalid field(s).")
        return validation_error_response(format_validation_errors(e))
    except ValueError as e:
        logging.warning(f"Rejected recommendation request: {e}")
        return validation_error_response([str(e)])

    try:
        producer: RecommendationStreamProducer = request.app.state.recommendation_producer
        events = await producer.open_stream(payload)

        return StreamingResponse(
            frame_events(events),
            status_code=200,
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )
    except Exception as e:
        logging.exception("Recommendation API: error while starting the recommendation stream.")
        message = str(e)
        if not message:
            return JSONResponse(
                status_code=500,
                content={"error": "An unknown server error occurred while processing your request."},
            )
        return JSONResponse(
            status_code=500,
            content={"error": f"An unexpected error occurred during AI recommendation: {message}"},
        )

# --- To run this server locally: ---
# 1. Install the project with `pip install -e .`.
# 2. Put GEMINI_API_KEY in your environment or .env file and check config/config.yaml.
# 3. From the project's root directory, run:
#    uvicorn src.api.main:app --host 0.0.0.0 --port 8000 --reload
