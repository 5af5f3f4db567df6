import json
from typing import Any

from aws_lambda_powertools import Logger
from aws_lambda_powertools.event_handler import APIGatewayRestResolver, Response, content_types
from aws_lambda_powertools.logging import correlation_paths
from aws_lambda_powertools.utilities.typing import LambdaContext
from pydantic import ValidationError as PydanticValidationError

from common import config
from common.analytics import AnalyticsClient
from common.errors import DataSourceError, InvertedRangeError, ValidationError
from common.intervals import parse_bucket_width
from common.metrics import enrich
from common.models import MeasureModel, ReadingModel, SeriesEnvelopeModel, sensor_index
from common.series import fetch_series
from common.timeutil import month_from_epoch_seconds, now_epoch_seconds, parse_epoch_seconds, round_half_up
from common.weather import predict

logger = Logger()
app = APIGatewayRestResolver()

store = AnalyticsClient(
    base_url=config.ANALYTICS_URL,
    table=config.MEASURES_TABLE,
    token_secret_name=config.ANALYTICS_TOKEN_SECRET_NAME,
    timeout=config.QUERY_TIMEOUT_SECS,
)


def _json_response(status_code: int, body: Any) -> Response:
    return Response(status_code=status_code, content_type=content_types.APPLICATION_JSON, body=json.dumps(body))


def parse_measure(sensor_id: str, raw_body: str | None) -> ReadingModel:
    """Validate an ingest body; nothing reaches the store unless this succeeds."""
    try:
        body = json.loads(raw_body or "")
    except json.JSONDecodeError as exc:
        raise ValidationError("Body must be a JSON object", [{"msg": str(exc)}]) from exc
    if not isinstance(body, dict):
        raise ValidationError("Body must be a JSON object")
    try:
        measure = MeasureModel.model_validate(body)
    except PydanticValidationError as exc:
        details = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()]
        raise ValidationError("Invalid measure payload", details) from exc
    return ReadingModel(sensorId=sensor_index(sensor_id), ts=int(now_epoch_seconds()), **measure.model_dump())


def resolve_window(raw_start: str | None, raw_end: str | None, now: float) -> tuple[int, int]:
    """Requested window in epoch seconds; missing or unparsable bounds default to the last hour."""
    end = parse_epoch_seconds(raw_end)
    start = parse_epoch_seconds(raw_start)
    if end is None:
        end = round_half_up(now)
    if start is None:
        start = round_half_up(now - config.DEFAULT_WINDOW_SECS)
    if start > end:
        raise InvertedRangeError(start, end)
    return start, end


@app.exception_handler(ValidationError)
def handle_validation_error(ex: ValidationError) -> Response:
    return _json_response(400, {"error": str(ex), "details": ex.details})


@app.exception_handler(InvertedRangeError)
def handle_inverted_range(ex: InvertedRangeError) -> Response:
    return _json_response(400, {"error": str(ex), "details": {"start": ex.start, "end": ex.end}})


@app.exception_handler(DataSourceError)
def handle_data_source_error(ex: DataSourceError) -> Response:
    return _json_response(500, {"error": str(ex), "details": ex.diagnostic})


@app.get("/version")
def get_version() -> dict[str, str]:
    return {"version": config.COMMIT_SHA}


@app.post("/sensors/<sensor_id>/measures")
def post_measure(sensor_id: str) -> Response:
    try:
        reading = parse_measure(sensor_id, app.current_event.body)
    except ValidationError as exc:
        logger.warning("measure_rejected", sensor_id=sensor_id, reason=str(exc), details=exc.details)
        raise

    try:
        store.write_reading(reading)
    except DataSourceError as exc:
        logger.error("measure_write_failed", sensor_id=sensor_id, ts=reading.ts, details=exc.diagnostic)
        return _json_response(500, {"error": "Failed to write data point"})

    return _json_response(201, {"message": "Data point created successfully"})


@app.get("/sensors/<sensor_id>")
def get_sensor_series(sensor_id: str) -> Response:
    query = app.current_event.query_string_parameters or {}
    try:
        start, end = resolve_window(query.get("start"), query.get("end"), now_epoch_seconds())
    except InvertedRangeError as exc:
        logger.warning("inverted_range", sensor_id=sensor_id, start=exc.start, end=exc.end)
        raise

    width = parse_bucket_width(query.get("width"))
    try:
        buckets = fetch_series(store, config.MEASURES_TABLE, sensor_id, start, end, width)
    except DataSourceError as exc:
        logger.error(
            "series_query_failed",
            sensor_id=sensor_id,
            start=start,
            end=end,
            status=exc.status_code,
            details=exc.diagnostic,
        )
        raise

    if not buckets:
        logger.warning("empty_result", sensor_id=sensor_id, start=start, end=end)

    envelope = SeriesEnvelopeModel(
        version=config.COMMIT_SHA,
        data=[enrich(bucket) for bucket in buckets],
        weatherPrediction=predict(buckets, month_from_epoch_seconds(end)),
    )
    return _json_response(200, envelope.model_dump())


@logger.inject_lambda_context(correlation_id_path=correlation_paths.API_GATEWAY_REST)
def lambda_handler(event: dict[str, Any], context: LambdaContext) -> dict[str, Any]:
    return app.resolve(event, context)
