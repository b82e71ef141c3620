from enum import Enum
from typing import Any, Dict, TypedDict, Union


class ErrorType(Enum):
    """
    Enumeration for the error types used in the application.

    Attributes:
        GENERAL_ERROR: Represents a general error that does not fall into specific categories.
        FETCH_ERROR: Represents a transport failure (connection, timeout) while calling a service.
        VALIDATION_ERROR: Represents a malformed event or settings object.
        AUTH_ERROR: Represents a failure signing the assertion or exchanging it for a token.
        PROFILE_LOOKUP_ERROR: Represents a failure looking up traits in the profile store.
        RATE_LOOKUP_ERROR: Represents a failure fetching an exchange rate.
        CATALOG_ERROR: Represents a failure fetching a product from the catalog.
        FORWARD_ERROR: Represents a failure posting the event to the tracking API.
    """

    GENERAL_ERROR = "GENERAL_ERROR"
    FETCH_ERROR = "FETCH_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    AUTH_ERROR = "AUTH_ERROR"
    PROFILE_LOOKUP_ERROR = "PROFILE_LOOKUP_ERROR"
    RATE_LOOKUP_ERROR = "RATE_LOOKUP_ERROR"
    CATALOG_ERROR = "CATALOG_ERROR"
    FORWARD_ERROR = "FORWARD_ERROR"


class LambdaContext:
    """
    The parts of the AWS Lambda context object the handler reads.

    Attributes:
        aws_request_id (str): The unique identifier for the current invocation
            of the Lambda function.
        log_stream_name (str): The name of the CloudWatch log stream for the
            current invocation.
    """

    aws_request_id: str
    log_stream_name: str


class AwsInfo(TypedDict, total=False):
    """
    A TypedDict representing AWS-related information.

    Attributes:
        aws_request_id (str): The unique identifier for the AWS request.
        log_stream_name (str): The name of the log stream associated with the AWS request.
    """

    aws_request_id: str
    log_stream_name: str


class SuccessResponseBase(TypedDict):
    """
    A base class for representing a successful response.

    Attributes:
        status (str): The status of the response, typically indicating success.
        message (str): Human readable summary.
        event (Dict[str, Any]): The enriched event that was forwarded.
    """

    status: str
    message: str
    event: Dict[str, Any]


# Failures are re-raised, never returned as a body
ResponseBody = Union[SuccessResponseBase, AwsInfo]


class ResponseType(TypedDict):
    """
    ResponseType is a TypedDict that defines the structure of a response object.

    Attributes:
        statusCode (int): The HTTP status code of the response.
        headers (Dict[str, str]): A dictionary containing the headers of the response.
        body (ResponseBody): The body of the response, represented by a ResponseBody object.
    """

    statusCode: int
    headers: Dict[str, str]
    body: ResponseBody
