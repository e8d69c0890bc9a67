"""API router for discoverease-bates.

All endpoints are registered here and included in main.py under /api/v1/discovery.
Routes delegate all logic to the service layer; no business logic in routes.
"""

import uuid

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.ext.asyncio import AsyncSession

from discoverease_bates.adapters.page_estimator import build_page_estimator
from discoverease_bates.adapters.repositories import (
    CaseRepository,
    DocumentRepository,
    PrivilegeLogEntryRepository,
    ProductionDocumentRepository,
    ProductionSetRepository,
)
from discoverease_bates.api.schemas import (
    AddDocumentsRequest,
    CaseBatesConfigRequest,
    CaseBatesConfigResponse,
    DocumentIntakeRequest,
    DocumentResponse,
    DownloadInfoResponse,
    PrivilegeLogEntryRequest,
    PrivilegeLogEntryResponse,
    PrivilegeLogProductionSetResponse,
    PrivilegeLogResponse,
    PrivilegeLogRowResponse,
    PrivilegeUpdateRequest,
    ProductionDocumentDetailResponse,
    ProductionDocumentListResponse,
    ProductionDocumentResponse,
    ProductionSetCreateRequest,
    ProductionSetResponse,
)
from discoverease_bates.auth import TenantContext, get_current_user
from discoverease_bates.core.services import (
    CaseBatesService,
    DocumentIntakeService,
    PrivilegeLogFormat,
    PrivilegeLogService,
    ProductionSetService,
)
from discoverease_bates.database import get_db_session
from discoverease_bates.settings import Settings, get_settings

router = APIRouter(prefix="/discovery", tags=["discovery"])


# ---------------------------------------------------------------------------
# Dependency factories
# ---------------------------------------------------------------------------


def get_case_bates_service(session: AsyncSession = Depends(get_db_session)) -> CaseBatesService:
    """Provide a configured CaseBatesService."""
    return CaseBatesService(case_repository=CaseRepository(session))


def get_document_intake_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> DocumentIntakeService:
    """Provide a DocumentIntakeService using the configured page estimator.

    Args:
        session: Injected async database session.
        settings: Injected service settings.

    Returns:
        DocumentIntakeService with all dependencies wired.
    """
    return DocumentIntakeService(
        case_repository=CaseRepository(session),
        document_repository=DocumentRepository(session),
        page_estimator=build_page_estimator(settings.page_count_strategy, settings.page_size_heuristic_bytes),
        allocation_timeout_seconds=settings.allocation_timeout_seconds,
    )


def get_production_set_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> ProductionSetService:
    """Provide a configured ProductionSetService.

    Args:
        session: Injected async database session.
        settings: Injected service settings.

    Returns:
        ProductionSetService with all dependencies wired.
    """
    return ProductionSetService(
        case_repository=CaseRepository(session),
        production_set_repository=ProductionSetRepository(session),
        production_document_repository=ProductionDocumentRepository(session),
        document_repository=DocumentRepository(session),
        allocation_timeout_seconds=settings.allocation_timeout_seconds,
        max_download_bytes=settings.max_download_bytes,
        download_warning_bytes=settings.download_warning_bytes,
    )


def get_privilege_log_service(session: AsyncSession = Depends(get_db_session)) -> PrivilegeLogService:
    """Provide a configured PrivilegeLogService."""
    return PrivilegeLogService(
        production_set_repository=ProductionSetRepository(session),
        production_document_repository=ProductionDocumentRepository(session),
        privilege_log_entry_repository=PrivilegeLogEntryRepository(session),
        document_repository=DocumentRepository(session),
    )


# ---------------------------------------------------------------------------
# Case endpoints
# ---------------------------------------------------------------------------


@router.put("/cases/{case_id}/bates", response_model=CaseBatesConfigResponse)
async def configure_case_bates(
    case_id: uuid.UUID,
    request: CaseBatesConfigRequest,
    tenant: TenantContext = Depends(get_current_user),
    service: CaseBatesService = Depends(get_case_bates_service),
) -> CaseBatesConfigResponse:
    """Enable, change or disable upload-time Bates numbering for a case."""
    case = await service.configure_prefix(case_id, request.bates_prefix, tenant)
    return CaseBatesConfigResponse.model_validate(case)


# ---------------------------------------------------------------------------
# Document intake endpoints
# ---------------------------------------------------------------------------


@router.post("/documents/intake", response_model=DocumentResponse, status_code=201)
async def intake_document(
    request: DocumentIntakeRequest,
    tenant: TenantContext = Depends(get_current_user),
    service: DocumentIntakeService = Depends(get_document_intake_service),
) -> DocumentResponse:
    """Record an uploaded document and optionally assign its Bates range.

    Numbers are only assigned when auto_bates is true and the case has a
    Bates prefix.
    """
    document = await service.intake(
        case_id=request.case_id,
        name=request.name,
        storage_path=request.storage_path,
        tenant=tenant,
        file_size=request.file_size,
        mime_type=request.mime_type,
        auto_bates=request.auto_bates,
        original_name=request.original_name,
        description=request.description,
        category=request.category,
        tags=request.tags,
    )
    return DocumentResponse.model_validate(document)


# ---------------------------------------------------------------------------
# Production set endpoints
# ---------------------------------------------------------------------------


@router.post("/productions", response_model=ProductionSetResponse, status_code=201)
async def create_production_set(
    request: ProductionSetCreateRequest,
    tenant: TenantContext = Depends(get_current_user),
    service: ProductionSetService = Depends(get_production_set_service),
) -> ProductionSetResponse:
    """Create an empty production set for a case."""
    production_set = await service.create_production_set(
        case_id=request.case_id,
        name=request.name,
        tenant=tenant,
        bates_prefix=request.bates_prefix,
        description=request.description,
        produced_date=request.produced_date,
        produced_to=request.produced_to,
        notes=request.notes,
    )
    return ProductionSetResponse.model_validate(production_set)


@router.get("/productions/{production_set_id}", response_model=ProductionSetResponse)
async def get_production_set(
    production_set_id: uuid.UUID,
    tenant: TenantContext = Depends(get_current_user),
    service: ProductionSetService = Depends(get_production_set_service),
) -> ProductionSetResponse:
    """Retrieve production set metadata including its Bates range."""
    production_set = await service.get_production_set(production_set_id, tenant)
    return ProductionSetResponse.model_validate(production_set)


@router.get("/productions/{production_set_id}/documents", response_model=ProductionDocumentListResponse)
async def list_production_documents(
    production_set_id: uuid.UUID,
    tenant: TenantContext = Depends(get_current_user),
    service: ProductionSetService = Depends(get_production_set_service),
) -> ProductionDocumentListResponse:
    """List a production's entries with their documents in Bates order."""
    pairs = await service.list_production_documents(production_set_id, tenant)
    entries = [
        ProductionDocumentDetailResponse(
            **ProductionDocumentResponse.model_validate(entry).model_dump(),
            document=DocumentResponse.model_validate(document),
        )
        for entry, document in pairs
    ]
    return ProductionDocumentListResponse(entries=entries, total_count=len(entries))


@router.post(
    "/productions/{production_set_id}/documents",
    response_model=list[ProductionDocumentResponse],
    status_code=201,
)
async def add_documents_to_production(
    production_set_id: uuid.UUID,
    request: AddDocumentsRequest,
    tenant: TenantContext = Depends(get_current_user),
    service: ProductionSetService = Depends(get_production_set_service),
) -> list[ProductionDocumentResponse]:
    """Add documents to a production, numbering them in request order.

    The batch is all-or-nothing: an unknown document id fails the request
    and creates no entries.
    """
    created = await service.add_documents(
        production_set_id,
        request.document_ids,
        tenant,
        bates_prefix=request.bates_prefix,
    )
    return [ProductionDocumentResponse.model_validate(entry) for entry in created]


@router.patch(
    "/productions/{production_set_id}/documents/{entry_id}/privilege",
    response_model=ProductionDocumentResponse,
)
async def update_privilege(
    production_set_id: uuid.UUID,
    entry_id: uuid.UUID,
    request: PrivilegeUpdateRequest,
    tenant: TenantContext = Depends(get_current_user),
    service: ProductionSetService = Depends(get_production_set_service),
) -> ProductionDocumentResponse:
    """Mark or clear the privilege flag of a production entry."""
    if request.is_privileged:
        entry = await service.mark_privileged(
            production_set_id, entry_id, tenant, privilege_reason=request.privilege_reason
        )
    else:
        entry = await service.clear_privilege(production_set_id, entry_id, tenant)
    return ProductionDocumentResponse.model_validate(entry)


@router.get("/productions/{production_set_id}/download-info", response_model=DownloadInfoResponse)
async def get_download_info(
    production_set_id: uuid.UUID,
    tenant: TenantContext = Depends(get_current_user),
    service: ProductionSetService = Depends(get_production_set_service),
) -> DownloadInfoResponse:
    """Report whether the production fits in a single download archive."""
    info = await service.get_download_info(production_set_id, tenant)
    return DownloadInfoResponse.model_validate(info)


@router.get("/productions/{production_set_id}/manifest")
async def get_manifest(
    production_set_id: uuid.UUID,
    tenant: TenantContext = Depends(get_current_user),
    service: ProductionSetService = Depends(get_production_set_service),
) -> Response:
    """Download the index.csv manifest of produced documents."""
    manifest = await service.build_manifest(production_set_id, tenant)
    return Response(
        content=manifest,
        headers={
            "Content-Type": "text/csv",
            "Content-Disposition": 'attachment; filename="index.csv"',
        },
    )


# ---------------------------------------------------------------------------
# Privilege log endpoints
# ---------------------------------------------------------------------------


@router.put("/privilege-log/entries/{document_id}", response_model=PrivilegeLogEntryResponse)
async def upsert_privilege_log_entry(
    document_id: uuid.UUID,
    request: PrivilegeLogEntryRequest,
    tenant: TenantContext = Depends(get_current_user),
    service: PrivilegeLogService = Depends(get_privilege_log_service),
) -> PrivilegeLogEntryResponse:
    """Record the privilege log details of a document."""
    entry = await service.upsert_entry(
        document_id,
        tenant,
        document_date=request.document_date,
        author=request.author,
        recipients=request.recipients,
        privilege_type=request.privilege_type,
        basis=request.basis,
        description=request.description,
    )
    return PrivilegeLogEntryResponse.model_validate(entry)


@router.get("/productions/{production_set_id}/privilege-log", response_model=PrivilegeLogResponse)
async def get_privilege_log(
    production_set_id: uuid.UUID,
    log_format: str = Query(default="json", alias="format", description="json, csv or pdf"),
    tenant: TenantContext = Depends(get_current_user),
    service: PrivilegeLogService = Depends(get_privilege_log_service),
) -> PrivilegeLogResponse | Response:
    """Generate the privilege log of a production set.

    json returns {"privilegeLog": [...], "productionSet": {...}} with camelCase
    keys; csv returns a file attachment; pdf is not available and returns 501.
    """
    report = await service.generate(production_set_id, tenant, format=log_format)

    if report.format is PrivilegeLogFormat.CSV:
        return Response(
            content=report.content,
            headers={
                "Content-Type": report.media_type,
                "Content-Disposition": f'attachment; filename="{report.filename}"',
            },
        )

    rows = [PrivilegeLogRowResponse.model_validate(row) for row in report.rows]
    return PrivilegeLogResponse(
        privilege_log=rows,
        production_set=PrivilegeLogProductionSetResponse.model_validate(report.production_set),
    )
