"""
Main application for the enricher component.
- Strips the message id from the incoming track event
- Looks up contact traits, converts amounts to DKK and adds product costs and margins
- Forwards the enriched event to the tracking API
"""

import asyncio
import json
from typing import Any, Dict, Mapping, Optional, Union

from shared.schemas.dto import FunctionSettings
from shared.utils.errors import EnrichmentError
from shared.utils.helpers import generate_response
from shared.utils.logger import logger
from shared.utils.types import AwsInfo, LambdaContext, ResponseType

from .service import EnrichmentPipeline


async def on_track(
    event: Mapping[str, Any], settings: Union[FunctionSettings, Mapping[str, Any]]
) -> Dict[str, Any]:
    """
    Handle a track event.

    Errors propagate to the caller, which is responsible for redelivery.

    Args:
        event: The track event
        settings: The function settings object

    Returns:
        The event as forwarded
    """
    pipeline = EnrichmentPipeline()
    try:
        return await pipeline.run(event, settings)
    finally:
        await pipeline.close()


async def app(
    event: Dict[str, Any],
    context: Optional[LambdaContext] = None,
    settings: Optional[FunctionSettings] = None,
) -> ResponseType:
    """
    Enrich a track event and forward it.

    Args:
        event: Lambda event object, the track event itself
        context: Lambda context object
        settings: Credentials; read from the environment when omitted

    Returns:
        Response object

    Raises:
        EnrichmentError: Re-raised after logging so the invocation is retried
    """
    aws_info: AwsInfo = {}
    if context and hasattr(context, "aws_request_id"):
        aws_info = {
            "aws_request_id": context.aws_request_id,
            "log_stream_name": context.log_stream_name,
        }

    try:
        enriched = await on_track(event, settings or FunctionSettings.from_env())
        return generate_response(
            200,
            {
                "status": "success",
                "message": "Successfully enriched and forwarded event",
                "event": enriched,
                **aws_info,
            },
        )
    except EnrichmentError as e:
        logger.error(f"{e.error_type.value} error: {e.message} {aws_info}")
        raise
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)} {aws_info}")
        raise


def lambda_handler(event: Dict[str, Any], context: LambdaContext) -> ResponseType:
    """
    Lambda handler function.

    Args:
        event: Lambda event object
        context: Lambda context object

    Returns:
        Response object
    """
    return asyncio.run(app(event, context))


if __name__ == "__main__":
    """Enrich a sample event against the configured services."""
    from dotenv import load_dotenv

    load_dotenv()

    mock_event = {
        "type": "track",
        "event": "Order Completed",
        "messageId": "local-test-message",
        "userId": None,
        "properties": {
            "revenue": 100,
            "currency": "USD",
            "products": [
                {"product_id": "A", "price": 50, "quantity": 2, "currency": "USD"}
            ],
        },
        "context": {},
    }

    result = asyncio.run(app(mock_event, None))

    print(json.dumps(result, indent=2))
