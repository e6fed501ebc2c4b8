import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from brainbolt.db.base import Base, engine, log_startup
from brainbolt.core.errors import QuizError, VersionConflict

# Import models so create_all picks them up
from brainbolt.users.models import User  # noqa: F401
from brainbolt.progression.models import UserState  # noqa: F401
from brainbolt.questions.models import Question  # noqa: F401
from brainbolt.answers.models import AnswerLog  # noqa: F401
from brainbolt.leaderboard.models import LeaderboardScore, LeaderboardStreak  # noqa: F401

from brainbolt.quiz.routes import router as quiz_router
from brainbolt.leaderboard.routes import router as leaderboard_router
from brainbolt.users.routes import router as users_router

# Engine modules log through "brainbolt.*"; send INFO and up to the console
logger = logging.getLogger("brainbolt")
logger.setLevel(logging.INFO)
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


app = FastAPI(title="BrainBolt", version="0.1.0")

log_startup()

# Create database tables (still useful in dev; in production prefer Alembic)
Base.metadata.create_all(bind=engine)


@app.exception_handler(QuizError)
def quiz_error_handler(request: Request, exc: QuizError):
    if exc.status_code >= 500:
        print(f"[API] {request.method} {request.url.path} -> {exc.__class__.__name__}: {exc.detail}", flush=True)
    content = {"error": exc.__class__.__name__, "detail": exc.detail}
    if isinstance(exc, VersionConflict):
        content["current_version"] = exc.current_version
    return JSONResponse(status_code=exc.status_code, content=content)


# Include routers
app.include_router(users_router)
app.include_router(quiz_router)
app.include_router(leaderboard_router)


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok"}
