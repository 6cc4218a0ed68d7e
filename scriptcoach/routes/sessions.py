"""Practice session APIs including the real-time WebSocket session."""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import asdict

from fastapi import APIRouter, Depends, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from scriptcoach.config import matcher_config, settings
from scriptcoach.database import async_session, get_db
from scriptcoach.exceptions import InvalidScriptError, SourceFatalError
from scriptcoach.models import PracticeAttempt
from scriptcoach.services.locale import recognition_locale
from scriptcoach.services.practice_session import PracticeSession
from scriptcoach.services.recognition import (
    INTERRUPTED_MESSAGE,
    SourceSupervisor,
    UtteranceTracker,
    split_transcript,
)
from scriptcoach.services.reports import (
    config_from_json,
    config_to_json,
    load_report,
    mark_done,
    mark_live,
    save_session_report,
)
from scriptcoach.services.word_alignment import tokenize_script

logger = logging.getLogger(__name__)

router = APIRouter()


# ---- Create / Report ----


@router.post("/sessions")
async def create_session(
    request: Request,
    db: AsyncSession = Depends(get_db),
):
    """Create a practice attempt.

    Body: {script: str, language?: str, preset?: str, overrides?: {field: value}}.
    """
    body = await request.json()
    script = body.get("script", "")
    language = (body.get("language") or settings.default_language).strip()
    preset = body.get("preset") or settings.default_preset

    try:
        tokens = tokenize_script(script)
    except InvalidScriptError as e:
        return JSONResponse({"error": str(e)}, status_code=422)

    try:
        config = matcher_config(preset, **(body.get("overrides") or {}))
    except KeyError:
        return JSONResponse({"error": f"Unknown preset {preset!r}"}, status_code=400)
    except TypeError as e:
        return JSONResponse({"error": f"Invalid override: {e}"}, status_code=400)

    locale = recognition_locale(language)
    attempt = PracticeAttempt(
        script_text=script,
        word_count=len(tokens),
        language=language,
        locale=locale,
        preset=preset,
        config_json=config_to_json(config),
    )
    db.add(attempt)
    await db.commit()

    logger.info(
        "Created attempt=%s: %d words, locale=%s, preset=%s",
        attempt.id, len(tokens), locale, preset,
    )
    return JSONResponse({
        "attempt_id": attempt.id,
        "language": language,
        "locale": locale,
        "preset": preset,
        "config": asdict(config),
        "words": [{"index": t.index, "text": t.raw_text} for t in tokens],
    })


@router.get("/sessions/{attempt_id}")
async def get_session_report(attempt_id: int, db: AsyncSession = Depends(get_db)):
    report = await load_report(db, attempt_id)
    if report is None:
        return JSONResponse({"error": "Attempt not found"}, status_code=404)
    return JSONResponse(report)


@router.get("/locales/{lang}")
async def get_recognition_locale(lang: str):
    return JSONResponse({"language": lang, "locale": recognition_locale(lang)})


# ---- WebSocket for the real-time practice session ----


@router.websocket("/ws/sessions/{attempt_id}")
async def practice_session_ws(websocket: WebSocket, attempt_id: int):
    """
    Run one practice session while the browser's recogniser streams words.

    Client sends JSON text frames:
      {"type": "tokens", "words": [...] | "transcript": str, "final": bool}
      {"type": "source_started"} | {"type": "source_ended"}
      {"type": "source_error", "error": str}
      {"type": "stop"}

    Server sends:
      {"type": "ready", "locale": str, "words": [...], ...}
      {"type": "word", ...WordPerformance, "cursor": int}
      {"type": "hint", "phase": str, "target_index": int|None, "word": str|None}
      {"type": "restart_source", "delay_ms": int, "attempt": int}
      {"type": "error", "message": str}
      {"type": "complete", "reason": str, "summary": {...}, "words": [...]}
    """
    await websocket.accept()

    # ---- Load attempt ----
    async with async_session() as db:
        result = await db.execute(
            select(PracticeAttempt).where(PracticeAttempt.id == attempt_id)
        )
        attempt = result.scalar_one_or_none()
    if attempt is None or attempt.ended_at is not None:
        message = "Attempt not found" if attempt is None else "Attempt already finished"
        await websocket.send_json({"type": "error", "message": message})
        await websocket.close()
        return

    outbox: asyncio.Queue = asyncio.Queue()

    def on_word_event(entry):
        outbox.put_nowait({"type": "word", **entry.to_dict(), "cursor": session.cursor})

    def on_hint_changed(hint):
        word = None
        if hint.target_index is not None:
            word = session.tokens[hint.target_index].raw_text
        outbox.put_nowait({"type": "hint", **hint.to_dict(), "word": word})

    session = PracticeSession(
        attempt.script_text,
        config_from_json(attempt.config_json),
        on_word_event=on_word_event,
        on_hint_changed=on_hint_changed,
    )
    tracker = UtteranceTracker()
    supervisor = SourceSupervisor()
    stop_event = asyncio.Event()
    stop_reason = "stopped"
    client_gone = False

    mark_live(attempt_id)
    logger.info(
        "Session started: attempt=%s, total_words=%d, locale=%s",
        attempt_id, len(session.tokens), attempt.locale,
    )
    await websocket.send_json({
        "type": "ready",
        "attempt_id": attempt_id,
        "locale": attempt.locale,
        "tick_interval_ms": session.tick_interval_ms,
        "words": [{"index": t.index, "text": t.raw_text} for t in session.tokens],
    })
    session.start()

    def handle_frame(msg: dict) -> None:
        nonlocal stop_reason
        msg_type = msg.get("type")

        if msg_type == "tokens":
            words = msg.get("words")
            if words is None:
                words = split_transcript(msg.get("transcript", ""))
            fresh = tracker.accept(words, final=bool(msg.get("final", False)))
            session.consume_batch(fresh)
            if session.is_closed:
                stop_reason = session.stop_reason or "completed"
                stop_event.set()

        elif msg_type == "source_started":
            supervisor.on_started()
            tracker.reset()

        elif msg_type == "source_ended":
            tracker.reset()
            decision = supervisor.on_ended()
            if decision.restart:
                outbox.put_nowait({
                    "type": "restart_source",
                    "delay_ms": decision.delay_ms,
                    "attempt": decision.attempt,
                })
            else:
                outbox.put_nowait({"type": "error", "message": INTERRUPTED_MESSAGE})
                stop_reason = "source_failed"
                stop_event.set()

        elif msg_type == "source_error":
            try:
                supervisor.on_error(str(msg.get("error", "unknown")))
            except SourceFatalError as e:
                outbox.put_nowait({
                    "type": "error",
                    "kind": e.kind,
                    "message": "Speech recognition hiccup, keep going!",
                })

        elif msg_type == "stop":
            stop_reason = "stopped"
            stop_event.set()

        else:
            logger.debug("attempt=%s: ignoring frame type %r", attempt_id, msg_type)

    async def client_to_session():
        """Task A: read frames from the browser and feed the session."""
        nonlocal stop_reason, client_gone
        try:
            while not stop_event.is_set():
                try:
                    data = await asyncio.wait_for(websocket.receive(), timeout=1.0)
                except asyncio.TimeoutError:
                    continue

                if data.get("type") == "websocket.disconnect":
                    client_gone = True
                    stop_reason = "disconnected"
                    stop_event.set()
                    return

                text = data.get("text")
                if not text:
                    continue
                try:
                    msg = json.loads(text)
                except json.JSONDecodeError:
                    logger.warning("attempt=%s: dropping malformed frame", attempt_id)
                    continue
                handle_frame(msg)

        except WebSocketDisconnect:
            client_gone = True
            stop_reason = "disconnected"
            stop_event.set()

    async def session_to_client():
        """Task B: forward session events to the browser."""
        nonlocal client_gone
        while True:
            msg = await outbox.get()
            if msg is None:
                return
            if client_gone:
                continue
            try:
                await websocket.send_json(msg)
            except Exception:
                logger.warning("attempt=%s: browser went away while sending", attempt_id)
                client_gone = True
                stop_event.set()

    sender = asyncio.create_task(session_to_client())
    try:
        await client_to_session()
    except Exception:
        logger.exception("attempt=%s: session loop failed", attempt_id)
        stop_reason = "error"
    finally:
        entries = session.stop(stop_reason)
        mark_done(attempt_id)

        summary = None
        try:
            async with async_session() as db:
                attempt = await db.get(PracticeAttempt, attempt_id)
                summary = await save_session_report(
                    db, attempt, entries, session.stop_reason, session.duration_seconds
                )
        except Exception:
            logger.exception("attempt=%s: failed to save report", attempt_id)

        outbox.put_nowait({
            "type": "complete",
            "reason": session.stop_reason,
            "summary": summary,
            "words": [e.to_dict() for e in entries],
        })
        outbox.put_nowait(None)
        await sender

        if not client_gone:
            try:
                await websocket.close()
            except Exception:
                pass
        logger.info(
            "Session ended: attempt=%s, reason=%s, cursor=%d/%d",
            attempt_id, session.stop_reason, session.cursor, len(session.tokens),
        )
