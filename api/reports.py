from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile

from config import IMAGE_UPLOAD_MAX_FILE_SIZE
from dependencies import ContextDep, UserDep, UserIdDep
from exceptions import ReportValidationError
from models.report import Report, ReportFilter
from models.species import Species, parse_species

router = APIRouter(prefix='/reports')


def _parse_coordinate(name: str, value: str | None) -> float | None:
    if value is None or not value.strip():
        return None
    try:
        return float(value)
    except ValueError:
        raise ReportValidationError(f'Valid {name} is required') from None


def _parse_species_filter(value: str | None) -> Species | None:
    if value is None or not value.strip() or value.strip().lower() == 'all':
        return None

    species = parse_species(value)
    if species is None:
        raise HTTPException(400, f'Unsupported species {value!r}, must be one of {[s.value for s in Species]}')
    return species


@router.post('')
async def create_report(
    context: ContextDep,
    user_id: UserIdDep,
    photo: Annotated[UploadFile | None, File()] = None,
    latitude: Annotated[str | None, Form()] = None,
    longitude: Annotated[str | None, Form()] = None,
    comentario: Annotated[str | None, Form()] = None,
    contato: Annotated[str | None, Form()] = None,
) -> Report:
    if photo is None:
        raise ReportValidationError('Photo is required')
    data = await photo.read(IMAGE_UPLOAD_MAX_FILE_SIZE + 1)
    if len(data) > IMAGE_UPLOAD_MAX_FILE_SIZE:
        raise ReportValidationError(f'Photo is too large, max allowed size is {IMAGE_UPLOAD_MAX_FILE_SIZE} bytes')

    return await context.ingest.ingest(
        data,
        _parse_coordinate('latitude', latitude),
        _parse_coordinate('longitude', longitude),
        comment=comentario,
        contact=contato,
        user_id=user_id,
    )


@router.get('')
async def list_reports(
    context: ContextDep,
    tipo: Annotated[str | None, Query()] = None,
    raca: Annotated[str | None, Query()] = None,
) -> list[Report]:
    filters = ReportFilter(
        species=_parse_species_filter(tipo),
        breed=raca.strip() if raca and raca.strip() else None,
    )
    return await context.reports.list(filters)


@router.get('/my')
async def list_my_reports(context: ContextDep, user: UserDep) -> list[Report]:
    return await context.reports.list(ReportFilter(user_id=user.id))


@router.get('/{id}')
async def get_report(context: ContextDep, id: str) -> Report:
    report = await context.reports.get(id)
    if report is None:
        raise HTTPException(404, f'Report {id!r} not found')
    return report
