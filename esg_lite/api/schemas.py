from pydantic import BaseModel, ConfigDict, Field

from esg_lite.database.models import ReportType
from esg_lite.reports.models import ReportRequest, ReportUpdate


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SubmitOcrRequest(_CamelModel):
    document_id: str = Field(alias="documentId", min_length=1)


class CreateReportRequest(_CamelModel):
    report_type: ReportType = Field(alias="reportType")
    period: str
    name: str | None = None
    document_ids: list[str] | None = Field(default=None, alias="documentIds")
    scope1: float | None = None
    scope2: float | None = None
    scope3: float | None = None

    def to_request(self) -> ReportRequest:
        return ReportRequest(
            report_type=self.report_type,
            period=self.period,
            name=self.name,
            document_ids=self.document_ids,
            scope1=self.scope1,
            scope2=self.scope2,
            scope3=self.scope3,
        )


class UpdateReportRequest(_CamelModel):
    name: str | None = None
    scope1: float | None = None
    scope2: float | None = None
    scope3: float | None = None
    recalculate: bool = False

    def to_update(self) -> ReportUpdate:
        return ReportUpdate(
            name=self.name,
            scope1=self.scope1,
            scope2=self.scope2,
            scope3=self.scope3,
            recalculate=self.recalculate,
        )
