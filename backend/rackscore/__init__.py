from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
allowed_origins = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:5174",
    "http://127.0.0.1:5174",
]
socketio = SocketIO(cors_allowed_origins=allowed_origins, async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, supports_credentials=True, origins=allowed_origins)

    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One scoring engine per process, bound to the scoped session
    from rackscore.services.games.engine import build_engine
    flask_app.extensions['scoring'] = build_engine(
        db.session,
        default_lineup_size=int(flask_app.config.get('DEFAULT_LINEUP_SIZE', 6)),
    )

    from rackscore.main import main
    flask_app.register_blueprint(main)

    from rackscore.api.games import games
    flask_app.register_blueprint(games, url_prefix='/api/games')

    from rackscore.socketio_events import register_socketio_handlers
    register_socketio_handlers(testing=flask_app.config.get('TESTING', False))

    @click.command('db-reset')
    def db_reset_command():
        """Drops, recreates, and seeds the database with a demo game."""
        with flask_app.app_context():
            db.drop_all()
            db.create_all()

            engine = flask_app.extensions['scoring']
            game = engine.lifecycle.create_game(
                home_team_id=1,
                away_team_id=2,
                home_lineup_ids=[101, 102, 103, 104, 105, 106],
                away_lineup_ids=[201, 202, 203, 204, 205, 206],
                location='Demo table',
            )
            print(f'Database has been reset and seeded with game {game.id}!')

    flask_app.cli.add_command(db_reset_command)

    return flask_app
