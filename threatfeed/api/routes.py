import logging

from fastapi import APIRouter
from starlette.responses import Response

from threatfeed.core.errors import AggregationError, EmptyReportError, ReportGenerationError
from threatfeed.core.responses import PDF_MEDIA_TYPE, attachment_headers, success_response
from threatfeed.services import pipeline
from threatfeed.services.ingestion.sources import SOURCE_REGISTRY
from threatfeed.services.reports import MONTHLY_REPORT, WEEKLY_REPORT, ReportSpec, build_report_for, report_filename

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["threats"])


@router.get("/threats")
async def list_threats():
    run = await pipeline.fetch_latest_threats()
    if run.is_empty:
        raise AggregationError(
            "Failed to fetch news from all sources",
            details={"failed_sources": run.failed_sources},
        )
    return success_response(
        [item.to_json() for item in run.items],
        meta={"count": len(run.items), "failed_sources": run.failed_sources},
    )


@router.get("/sources")
def list_sources():
    return success_response([source.describe().model_dump() for source in SOURCE_REGISTRY])


async def _report_response(spec: ReportSpec) -> Response:
    try:
        run = await pipeline.fetch_all_threats()
        pdf = build_report_for(spec, run.items)
    except EmptyReportError:
        raise
    except Exception as exc:  # noqa: BLE001
        logger.exception("Failed to generate %s report", spec.slug)
        raise ReportGenerationError(
            f"Failed to generate {spec.slug} report", details={"reason": str(exc)}
        ) from exc
    return Response(pdf, media_type=PDF_MEDIA_TYPE, headers=attachment_headers(report_filename(spec.title)))


@router.get("/reports/weekly")
async def weekly_report():
    return await _report_response(WEEKLY_REPORT)


@router.get("/reports/monthly")
async def monthly_report():
    return await _report_response(MONTHLY_REPORT)
