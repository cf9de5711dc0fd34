from fastapi.requests import HTTPConnection

from interview_coach.services.interview.session import InterviewSession
from interview_coach.services.pipeline.results_pipeline import ResultsPipeline
from interview_coach.services.providers.base import AIProvider

# Works for both HTTP requests and WebSocket connections; everything below
# is created once in the application lifespan.


def get_provider(connection: HTTPConnection) -> AIProvider:
    """The configured provider (resolved once at process start)."""
    return connection.app.state.provider


def get_session(connection: HTTPConnection) -> InterviewSession:
    """The single active interview session of this process."""
    return connection.app.state.session


def get_results_pipeline(connection: HTTPConnection) -> ResultsPipeline:
    return connection.app.state.results_pipeline
