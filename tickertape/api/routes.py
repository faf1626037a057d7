from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from tickertape.errors import DecodeFailure, DuplicateTickerError, NetworkFailure
from tickertape.schemas.settings import SettingsUpdate

router = APIRouter()


class AddTickerRequest(BaseModel):
    symbol: str


def _service(request: Request):
    return request.app.state.ticker_tape_service


@router.get('/quotes')
def list_quotes(request: Request):
    service = _service(request)
    return {
        'is_loading': service.is_loading(),
        'quotes': [q.model_dump(mode='json') for q in service.current_quotes()],
    }


@router.post('/tickers', status_code=201)
def add_ticker(req: AddTickerRequest, request: Request):
    service = _service(request)
    try:
        quote = service.add_ticker(req.symbol)
    except DuplicateTickerError as exc:
        raise HTTPException(status_code=409, detail='DUPLICATE_TICKER') from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return quote.model_dump(mode='json')


@router.delete('/tickers/{quote_id}')
def remove_ticker(quote_id: str, request: Request):
    if not _service(request).remove_ticker(quote_id):
        raise HTTPException(status_code=404, detail='ticker not found')
    return {'removed': quote_id}


@router.get('/settings')
def get_settings(request: Request):
    return _service(request).settings().model_dump(mode='json')


@router.put('/settings')
def update_settings(req: SettingsUpdate, request: Request):
    updated = _service(request).set_settings(req.model_dump(exclude_none=True))
    return updated.model_dump(mode='json')


@router.post('/refresh', status_code=202)
def manual_refresh(request: Request):
    service = _service(request)
    accepted = service.manual_refresh()
    outcome = service.scheduler.last_outcome
    return {
        'accepted': accepted,
        'updated': outcome.updated if accepted and outcome else [],
        'failed': outcome.failed_tickers if accepted and outcome else [],
    }


@router.get('/marquee')
def get_marquee(request: Request):
    return _service(request).marquee().model_dump()


@router.get('/search')
def search_symbols(q: str, request: Request):
    try:
        matches = _service(request).search_symbols(q)
    except (NetworkFailure, DecodeFailure) as exc:
        raise HTTPException(status_code=502, detail='SEARCH_PROVIDER_FAILED') from exc
    return [m.model_dump() for m in matches]


@router.get('/metrics/refresh')
def refresh_metrics(request: Request):
    service = _service(request)
    metrics = service.scheduler.metrics()
    metrics['tracked_tickers'] = len(service.current_quotes())
    metrics['is_loading'] = service.is_loading()
    return metrics
