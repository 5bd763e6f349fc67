"""Session API: login, scan, use, dilemma choices and card lifecycle commands."""
from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import dataclass, field
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, ValidationError

from backend.app.content.repository import MasterCatalog
from backend.app.core.error_handling import create_error_response
from backend.app.core.interpreter import UnknownCodeInterpreter
from backend.app.core.session import GameSession
from backend.app.db.local_cache import LocalCache
from backend.app.models.event import normalize_player_class, parse_event
from backend.app.models.outcomes import (
    AppliedEffect,
    DilemmaResult,
    InvalidMutation,
    NotFound,
    PersistenceFailure,
    ResolvedEvent,
    ScanIgnored,
    TradeCompleted,
    TradeRejected,
    UseResult,
)
from backend.app.store.client import EventStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/sessions", tags=["sessions"])


@dataclass
class Engine:
    """App-lifetime collaborators shared by every session."""
    catalog: MasterCatalog
    store: EventStore | None = None
    cache: LocalCache | None = None
    interpreter: UnknownCodeInterpreter | None = None
    admin_scope: str = "admin"
    offline: bool = False
    sessions: dict[str, GameSession] = field(default_factory=dict)
    lock: threading.Lock = field(default_factory=threading.Lock)

    def open_session(self, user_id: str, player_class: Any = None, in_room: bool = False) -> tuple[str, GameSession]:
        session = GameSession.login(
            user_id,
            catalog=self.catalog,
            store=self.store,
            cache=self.cache,
            interpreter=self.interpreter,
            admin_scope=self.admin_scope,
            offline=self.offline,
            player_class=normalize_player_class(player_class),
            in_room=in_room,
        )
        sid = uuid.uuid4().hex
        with self.lock:
            self.sessions[sid] = session
        return sid, session

    def close_session(self, sid: str) -> GameSession | None:
        with self.lock:
            session = self.sessions.pop(sid, None)
        if session is not None:
            session.logout()
        return session


def get_engine(request: Request) -> Engine:
    engine = getattr(request.app.state, "engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Engine not initialized")
    return engine


def get_session(sid: str, engine: Engine = Depends(get_engine)) -> GameSession:
    session = engine.sessions.get(sid)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Session '{sid}' not found")
    return session


# ----------------------------------------------------------------------
# Request bodies
# ----------------------------------------------------------------------

class LoginRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    player_class: str | None = None
    in_room: bool = False


class ScanRequest(BaseModel):
    code: str


class DilemmaRequest(BaseModel):
    option_index: int = Field(..., ge=0)


class BuyRequest(BaseModel):
    item_id: str = Field(..., min_length=1)


# ----------------------------------------------------------------------
# Outcome serialization
# ----------------------------------------------------------------------

def _effect_json(effect: AppliedEffect) -> dict[str, Any]:
    return {
        "target": effect.target,
        "delta": effect.delta,
        "before": effect.before,
        "after": effect.after,
        "feedback": effect.feedback.value if effect.feedback else None,
    }


def _persistence_json(failure: PersistenceFailure | None) -> dict[str, Any] | None:
    if failure is None:
        return None
    return {"action": failure.action, "reason": failure.reason, "reverted": failure.reverted}


def _invalid_mutation(outcome: InvalidMutation) -> JSONResponse:
    logger.info("Blocked %s of %s: %s", outcome.action, outcome.event_id, outcome.reason)
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content=create_error_response(
            error_code="INVALID_MUTATION",
            message=f"Cannot {outcome.action} '{outcome.event_id}': {outcome.reason}",
            node="lifecycle",
            details={"event_id": outcome.event_id, "action": outcome.action, "reason": outcome.reason},
        ),
    )


def _mutation_response(outcome) -> Any:
    if isinstance(outcome, InvalidMutation):
        return _invalid_mutation(outcome)
    if isinstance(outcome, PersistenceFailure):
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=create_error_response(
                error_code="PERSISTENCE_FAILURE",
                message=outcome.reason,
                node="store",
                details={"event_id": outcome.event_id, **_persistence_json(outcome)},
            ),
        )
    return {
        "eventId": outcome.event_id,
        "action": outcome.action,
        "created": outcome.created,
        "event": outcome.event.to_wire() if outcome.event is not None else None,
        "persistence": _persistence_json(outcome.persistence),
    }


def _resolved_json(outcome: ResolvedEvent) -> dict[str, Any]:
    return {
        "status": "resolved",
        "event": outcome.event.to_wire(),
        "source": outcome.source.value,
        "fromScanner": outcome.from_scanner,
        "presentation": outcome.presentation.value,
        "instantEffect": outcome.instant_effect,
        "unavailable": [u.source.value for u in outcome.unavailable],
    }


# ----------------------------------------------------------------------
# Routes
# ----------------------------------------------------------------------

@router.post("", status_code=status.HTTP_201_CREATED)
def login(body: LoginRequest, engine: Engine = Depends(get_engine)):
    sid, session = engine.open_session(body.user_id.strip(), body.player_class, body.in_room)
    return {"session_id": sid, **session.snapshot()}


@router.delete("/{sid}")
def logout(sid: str, engine: Engine = Depends(get_engine)):
    if engine.close_session(sid) is None:
        raise HTTPException(status_code=404, detail=f"Session '{sid}' not found")
    return {"closed": sid}


@router.get("/{sid}/state")
def get_state(session: GameSession = Depends(get_session)):
    return session.snapshot()


@router.post("/{sid}/scan")
def scan(body: ScanRequest, session: GameSession = Depends(get_session)):
    outcome = session.scan(body.code)
    if isinstance(outcome, ResolvedEvent):
        return _resolved_json(outcome)
    if isinstance(outcome, ScanIgnored):
        return {"status": "ignored", "code": outcome.code, "reason": outcome.reason}
    assert isinstance(outcome, NotFound)
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=create_error_response(
            error_code="NOT_FOUND",
            message=f"Code '{outcome.code}' did not resolve",
            node="resolution",
            details={"code": outcome.code, "unavailable": [u.source.value for u in outcome.unavailable]},
        ),
    )


@router.post("/{sid}/close")
def close_event(session: GameSession = Depends(get_session)):
    return {"offerTurnAdvance": session.close_event()}


@router.post("/{sid}/use")
def use_current(session: GameSession = Depends(get_session)):
    outcome = session.use_current()
    if isinstance(outcome, InvalidMutation):
        return _invalid_mutation(outcome)
    assert isinstance(outcome, UseResult)
    return {
        "eventId": outcome.event.id,
        "state": outcome.state.model_dump(),
        "effects": [_effect_json(e) for e in outcome.effects],
        "consumed": outcome.consumed,
        "retainedLocked": outcome.retained_locked,
    }


@router.post("/{sid}/dilemma")
def choose_dilemma(body: DilemmaRequest, session: GameSession = Depends(get_session)):
    outcome = session.choose_dilemma(body.option_index)
    if isinstance(outcome, InvalidMutation):
        return _invalid_mutation(outcome)
    assert isinstance(outcome, DilemmaResult)
    return {
        "optionIndex": outcome.option_index,
        "consequenceText": outcome.consequence_text,
        "physicalInstruction": outcome.physical_instruction,
        "state": outcome.state.model_dump(),
        "effects": [_effect_json(e) for e in outcome.effects],
    }


@router.post("/{sid}/events")
def save_event(payload: dict[str, Any], session: GameSession = Depends(get_session)):
    try:
        event = parse_event(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=f"Invalid event: {e.error_count()} error(s)")
    return _mutation_response(session.save(event))


@router.delete("/{sid}/events/{event_id}")
def delete_event(event_id: str, session: GameSession = Depends(get_session)):
    return _mutation_response(session.delete(event_id))


@router.post("/{sid}/events/{event_id}/lock")
def toggle_lock(event_id: str, session: GameSession = Depends(get_session)):
    return _mutation_response(session.toggle_lock(event_id))


@router.post("/{sid}/events/{event_id}/edit")
def load_for_edit(event_id: str, session: GameSession = Depends(get_session)):
    return _mutation_response(session.load_for_edit(event_id))


@router.post("/{sid}/merchant/buy")
def merchant_buy(body: BuyRequest, session: GameSession = Depends(get_session)):
    outcome = session.buy(body.item_id)
    if isinstance(outcome, TradeRejected):
        return JSONResponse(
            status_code=status.HTTP_409_CONFLICT,
            content=create_error_response(
                error_code="TRADE_REJECTED",
                message=outcome.reason,
                node="merchant",
                details={"item_id": outcome.item_id},
            ),
        )
    assert isinstance(outcome, TradeCompleted)
    return {
        "item": outcome.item.to_wire(),
        "price": outcome.price,
        "stockLeft": outcome.stock_left,
        "state": outcome.state.model_dump() if outcome.state else None,
    }
