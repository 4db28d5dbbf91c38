import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from pitstop.core import config
from pitstop.core.errors import ApiError, ErrorKind
from pitstop.database import init_db
from pitstop.routes import (
    auth_routes,
    availability_routes,
    booking_routes,
    category_routes,
    content_routes,
    discount_routes,
    group_routes,
    message_routes,
    notification_routes,
    payment_routes,
    plan_routes,
    report_routes,
    review_routes,
    schedule_routes,
    service_routes,
    setting_routes,
    subscription_routes,
    tag_routes,
    user_routes,
    wallet_routes,
)

logging.basicConfig(
    level=config.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)

app = FastAPI(title='PitStop API')

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


def error_response(kind: ErrorKind, message: str) -> JSONResponse:
    return JSONResponse(status_code=kind.status_code, content={'error': message})


def first_validation_message(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return 'Invalid request'
    message = str(errors[0].get('msg', 'Invalid request'))
    # pydantic prefixes messages raised from field validators.
    return message.removeprefix('Value error, ')


@app.on_event('startup')
def initialize_database() -> None:
    config.validate_runtime_config()
    try:
        init_db()
    except SQLAlchemyError:
        logger.exception('Database initialization failed. Check DATABASE_URL.')


@app.exception_handler(ApiError)
async def api_error_handler(request: Request, exc: ApiError):
    if exc.kind is ErrorKind.INTERNAL:
        logger.error('Internal error on %s: %s', request.url.path, exc.message)
    return error_response(exc.kind, exc.message)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    logger.warning('Validation error for %s: %s', request.url.path, exc.errors())
    return error_response(ErrorKind.INVALID_ARGUMENT, first_validation_message(exc))


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning('Integrity error on %s: %s', request.url.path, exc.orig)
    return error_response(ErrorKind.CONFLICT, 'Resource already exists')


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception('Unhandled error on %s', request.url.path, exc_info=exc)
    return error_response(ErrorKind.INTERNAL, 'Internal Server Error')


@app.get('/')
def root():
    return {'status': 'PitStop API Running'}


app.include_router(auth_routes.router, prefix='/auth')
app.include_router(availability_routes.router, prefix='/availability')
app.include_router(schedule_routes.business_hours_router, prefix='/business-hours')
app.include_router(schedule_routes.holidays_router, prefix='/holidays')
app.include_router(service_routes.router, prefix='/services')
app.include_router(review_routes.service_reviews_router, prefix='/services')
app.include_router(review_routes.router, prefix='/reviews')
app.include_router(booking_routes.router, prefix='/bookings')
app.include_router(payment_routes.payments_router, prefix='/payments')
app.include_router(payment_routes.webhook_router, prefix='/payment')
app.include_router(category_routes.router, prefix='/categories')
app.include_router(tag_routes.router, prefix='/tags')
app.include_router(content_routes.router, prefix='/content')
app.include_router(discount_routes.router, prefix='/discounts')
app.include_router(plan_routes.router, prefix='/plans')
app.include_router(subscription_routes.router, prefix='/subscriptions')
app.include_router(setting_routes.router, prefix='/settings')
app.include_router(report_routes.router, prefix='/reports')
app.include_router(user_routes.router, prefix='/users')
app.include_router(wallet_routes.router, prefix='/wallet')
app.include_router(message_routes.router, prefix='/messages')
app.include_router(notification_routes.router, prefix='/notifications')
app.include_router(group_routes.router, prefix='/groups')
