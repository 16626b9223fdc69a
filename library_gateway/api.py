import logging
import uuid
from contextlib import asynccontextmanager
from datetime import date, datetime, timezone
from typing import List

from fastapi import Depends, FastAPI, Header, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from library_gateway.config import settings
from library_gateway.exceptions import GatewayError, LimitExceededError, NotFoundError
from library_gateway.models import (
    Book,
    BookCondition,
    BookReservation,
    Library,
    Rating,
    ReservationStatus,
    TakeBookResult,
)
from library_gateway.reservations import ReservationOrchestrator, build_orchestrator
from library_gateway.services.http_client import cleanup_http_clients

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

UNEXPECTED_MESSAGE = "Unexpected server error."
LIMIT_MESSAGE = "Limit of simultaneously rented books exceeded."
NOT_FOUND_MESSAGE = "Requested resource not found."


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"{settings.app_name} {settings.app_version} starting ({settings.environment})")
    try:
        yield
    finally:
        await cleanup_http_clients()


app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)


# --- Error handling ---
@app.middleware("http")
async def catch_unexpected_errors(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception(f"Unexpected error in {request.method} {request.url.path}")
        return JSONResponse(status_code=500, content={"message": UNEXPECTED_MESSAGE})


@app.exception_handler(LimitExceededError)
async def limit_exceeded_handler(request: Request, exc: LimitExceededError):
    logger.warning(f"Rented books limit exceeded for user {exc.user_name}: {exc}")
    return JSONResponse(status_code=403, content={"message": LIMIT_MESSAGE})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    logger.warning(f"{request.method} {request.url.path}: {exc}")
    return JSONResponse(status_code=404, content={"message": NOT_FOUND_MESSAGE})


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError):
    logger.error(f"Error in {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(status_code=500, content={"message": UNEXPECTED_MESSAGE})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", ())), "error": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(status_code=400, content={"message": "Validation failed.", "errors": errors})


# --- Models ---
class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RatingModel(CamelModel):
    stars: int

    @staticmethod
    def of(rating: Rating) -> "RatingModel":
        return RatingModel(stars=rating.stars)


class BookInfoModel(CamelModel):
    book_uid: str = Field(alias="bookUid")
    name: str
    author: str
    genre: str

    @staticmethod
    def of(book: Book) -> "BookInfoModel":
        return BookInfoModel(book_uid=book.book_uid, name=book.name, author=book.author, genre=book.genre)


class LibraryModel(CamelModel):
    library_uid: str = Field(alias="libraryUid")
    name: str
    address: str
    city: str

    @staticmethod
    def of(library: Library) -> "LibraryModel":
        return LibraryModel(
            library_uid=library.library_uid,
            name=library.name,
            address=library.address,
            city=library.city,
        )


class BookReservationModel(CamelModel):
    reservation_uid: str = Field(alias="reservationUid")
    status: ReservationStatus
    start_date: date = Field(alias="startDate")
    till_date: date = Field(alias="tillDate")
    book: BookInfoModel
    library: LibraryModel

    @staticmethod
    def of(item: BookReservation) -> "BookReservationModel":
        r = item.reservation
        return BookReservationModel(
            reservation_uid=r.reservation_uid,
            status=r.status,
            start_date=r.start_date,
            till_date=r.till_date,
            book=BookInfoModel.of(item.book),
            library=LibraryModel.of(item.library),
        )


class TakeBookResponseModel(BookReservationModel):
    rating: RatingModel

    @staticmethod
    def of(result: TakeBookResult) -> "TakeBookResponseModel":
        r = result.reservation
        return TakeBookResponseModel(
            reservation_uid=r.reservation_uid,
            status=r.status,
            start_date=r.start_date,
            till_date=r.till_date,
            book=BookInfoModel.of(result.book),
            library=LibraryModel.of(result.library),
            rating=RatingModel.of(result.rating),
        )


class TakeBookRequestModel(CamelModel):
    book_uid: str = Field(alias="bookUid", min_length=1)
    library_uid: str = Field(alias="libraryUid", min_length=1)
    till_date: date = Field(alias="tillDate")


class ReturnBookRequestModel(CamelModel):
    condition: BookCondition
    return_date: date = Field(alias="date")


# --- Dependencies ---
async def get_orchestrator() -> ReservationOrchestrator:
    return await build_orchestrator()


# --- Health ---
@app.get("/manage/health")
async def health():
    return {
        "status": "healthy",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "version": settings.app_version,
        "services": settings.service_urls(),
    }


# --- Rating ---
@app.get("/api/v1/rating", response_model=RatingModel)
async def get_user_rating(
    user_name: str = Header(..., alias="X-User-Name"),
    orchestrator: ReservationOrchestrator = Depends(get_orchestrator),
):
    rating = await orchestrator.get_rating(user_name)
    return RatingModel.of(rating)


# --- Reservations ---
@app.get("/api/v1/reservations", response_model=List[BookReservationModel])
async def get_reservations(
    user_name: str = Header(..., alias="X-User-Name"),
    orchestrator: ReservationOrchestrator = Depends(get_orchestrator),
):
    items = await orchestrator.get_reservations(user_name)
    return [BookReservationModel.of(item) for item in items]


@app.post("/api/v1/reservations", response_model=TakeBookResponseModel)
async def take_book(
    payload: TakeBookRequestModel,
    user_name: str = Header(..., alias="X-User-Name"),
    orchestrator: ReservationOrchestrator = Depends(get_orchestrator),
):
    result = await orchestrator.take_book(user_name, payload.book_uid, payload.library_uid, payload.till_date)
    return TakeBookResponseModel.of(result)


@app.post("/api/v1/reservations/{reservation_uid}/return", status_code=204)
async def return_book(
    reservation_uid: uuid.UUID,
    payload: ReturnBookRequestModel,
    user_name: str = Header(..., alias="X-User-Name"),
    orchestrator: ReservationOrchestrator = Depends(get_orchestrator),
):
    await orchestrator.return_book(str(reservation_uid), user_name, payload.return_date, payload.condition)
    return Response(status_code=204)
