import sys
import logging
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from quran_quiz.config import settings
from quran_quiz.presentation.api.routers.quiz_router import router as quiz_router
from quran_quiz.presentation.api.routers.user_router import router as user_router
from quran_quiz.presentation.api.routers.admin_router import router as admin_router
from quran_quiz.infrastructure.db.session import Base, engine
from quran_quiz.infrastructure.db import models  # noqa: F401  (registers tables)

# Create tables
Base.metadata.create_all(bind=engine)

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(title="Quran Quiz API")

# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Global unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"detail": "An internal server error occurred."}
    )

# Include routers
app.include_router(quiz_router)
app.include_router(user_router)
app.include_router(admin_router)


@app.get("/health")
def health():
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
