"""
Sprout Web Server

FastAPI-based web server exposing CDC growth reference data and growth
chart computation for the baby tracker front end.
"""

import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

# Setup paths
project_root = Path(__file__).parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from knowledge.growth import ReferenceDataError
from src.config import configure_logging, get_engine
from src.engines import annotate_measurement
from src.models import GrowthChart, MeasurementType, Sex, make_measurement, measurement_from_log


# Create FastAPI app
app = FastAPI(
    title="Sprout",
    description="Sprout - Baby Growth Percentile API",
    version="0.1.0",
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Request/Response models
class LoggedMeasurement(BaseModel):
    """A measurement as stored by the activity log."""
    date: datetime
    type: str = Field(..., description="WEIGHT, HEIGHT, HEAD_CIRCUMFERENCE or TEMPERATURE")
    value: float
    unit: str = ""


class ChartRequest(BaseModel):
    """Request model for growth chart computation."""
    birth_date: date
    sex: Optional[str] = Field(None, description="Baby gender (MALE/FEMALE); unknown charts as male")
    measurement_type: MeasurementType
    measurements: list[LoggedMeasurement] = Field(default_factory=list)
    display_unit: Optional[str] = Field(None, description="KG/LB for weight, CM/IN for lengths")
    max_age_months: Optional[float] = Field(None, gt=0, le=36, description="X-axis limit in months")
    today: Optional[date] = Field(None, description="Reference date for the x-axis window")


class PercentileRequest(BaseModel):
    """Request model for a single percentile."""
    birth_date: date
    measurement_date: date
    sex: Sex
    measurement_type: MeasurementType
    value: float = Field(..., gt=0)
    unit: str = ""


class PercentileResponse(BaseModel):
    """A single measurement placed against the reference population."""
    age_months: float
    canonical_value: float
    canonical_unit: str
    percentile: float


def _envelope_error(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


# Routes
@app.get("/api/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@app.get("/api/cdc-growth-data")
async def get_cdc_growth_data(
    sex: Optional[str] = Query(None, description="1 = Male, 2 = Female"),
    measurement_type: Optional[str] = Query(None, alias="type"),
) -> Any:
    """
    CDC reference rows for a sex and measurement type, ordered by age.
    """
    if not sex or not measurement_type:
        return _envelope_error("sex and type parameters are required", 400)

    try:
        reference_sex = Sex.from_cdc_code(int(sex))
    except ValueError:
        return _envelope_error("sex must be 1 (Male) or 2 (Female)", 400)

    try:
        kind = MeasurementType(measurement_type)
    except ValueError:
        return _envelope_error(
            "Invalid measurement type. Use: weight, length, or head_circumference", 400
        )

    try:
        rows = get_engine().reference_table(kind, reference_sex)
    except (ReferenceDataError, ValueError):
        return _envelope_error("Failed to fetch CDC growth data", 500)

    return {
        "success": True,
        "data": [
            {**row.model_dump(mode="json", exclude={"sex"}), "sex": row.sex.cdc_code}
            for row in rows
        ],
    }


@app.post("/api/growth/chart", response_model=GrowthChart)
async def growth_chart(request: ChartRequest):
    """
    Build the growth chart for one measurement type.

    Returns the annotated measurements and the merged reference/measurement series.
    """
    records = []
    for entry in request.measurements:
        record = measurement_from_log(entry.model_dump())
        if record is not None:
            records.append(record)

    try:
        engine = get_engine()
        return engine.build(
            records,
            request.measurement_type,
            Sex.from_gender(request.sex),
            request.birth_date,
            display_unit=request.display_unit,
            today=request.today,
            window_months=request.max_age_months,
        )
    except ReferenceDataError as e:
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/api/growth/percentile", response_model=PercentileResponse)
async def growth_percentile(request: PercentileRequest):
    """Percentile of a single measurement."""
    if request.measurement_date < request.birth_date:
        raise HTTPException(status_code=400, detail="Measurement date is before birth date")

    try:
        table = get_engine().reference_table(request.measurement_type, request.sex)
    except ReferenceDataError as e:
        raise HTTPException(status_code=500, detail=str(e))

    record = make_measurement(
        request.measurement_type,
        datetime.combine(request.measurement_date, datetime.min.time()),
        request.value,
        request.unit,
    )
    point = annotate_measurement(
        record, table, request.birth_date, request.measurement_type.canonical_unit,
    )

    return PercentileResponse(
        age_months=point.age_months,
        canonical_value=point.canonical_value,
        canonical_unit=request.measurement_type.canonical_unit,
        percentile=point.percentile,
    )


def run_server(host: str = "0.0.0.0", port: int = 8000):
    """Run the server."""
    import uvicorn
    configure_logging()
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    run_server()
