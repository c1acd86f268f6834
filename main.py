from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from app.db.base import engine, Base
from app.api.v1.calendar import router as calendar_router
from app.api.v1.assignment import router as assignment_router
from app.api.v1.milestone import router as milestone_router
from app.api.v1.course import router as course_router
from app.core.config import LOG_LEVEL
import logging

# Import all models to register them with SQLAlchemy
from app.db.models import User, Course, Assignment, Milestone, CalendarEvent

origins = ["*"]

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s - %(levelname)s - %(name)s - %(message)s")

app = FastAPI(title="Academic Planner API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(calendar_router)
app.include_router(assignment_router)
app.include_router(milestone_router)
app.include_router(course_router)

# Create tables
Base.metadata.create_all(bind=engine)


@app.get("/health", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app="main:app", host="0.0.0.0", port=8000, reload=True)
