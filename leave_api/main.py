import logging

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.exc import SQLAlchemyError

from leave_api.core import config
from leave_api.core.errors import register_exception_handlers
from leave_api.database import init_db
from leave_api.routes import auth_routes, leave_routes, user_routes

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )


def create_app() -> FastAPI:
    config.validate_runtime_config()

    app = FastAPI(title='Leave Management API', version='1.0.0')

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=['*'],
        allow_headers=['*'],
    )

    register_exception_handlers(app)

    @app.on_event('startup')
    def initialize_database() -> None:
        try:
            init_db()
        except SQLAlchemyError:
            logger.exception('Database initialization failed. Check DATABASE_URL or DB_* settings.')

    @app.get('/')
    def root():
        return {'status': 'Leave Management API Running'}

    app.include_router(auth_routes.router, prefix='/auth')
    app.include_router(user_routes.router, prefix='/users')
    app.include_router(leave_routes.router, prefix='/leaves')

    return app


configure_logging()
app = create_app()


def run() -> None:
    uvicorn.run(app, host=config.HOST, port=config.PORT, log_level=config.LOG_LEVEL.lower())


if __name__ == '__main__':
    run()
