"""
Quart application exposing search, ratings and comments as a JSON API.
"""
import logging
from functools import wraps
from typing import Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError
from quart import Quart, request, jsonify
from quart_cors import cors

from core.entities import Identity
from core.errors import AppError, InvalidArgument, NotFoundOrForbidden, Unauthenticated
from core.schemas import (
    CommentCreateRequest,
    CommentUpdateRequest,
    CredentialsRequest,
    RateRequest,
)
from ingestion.base import SearchProvider
from services.config import Config, load_config
from services.container import Services, build_services

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

# Initialize app
app = Quart(__name__)
app = cors(app)

# Initialize services
container: Optional[Services] = None


def get_services() -> Services:
    """Get or create the service container from config.yml / .env."""
    global container
    if container is None:
        container = build_services(load_config())
    return container


def init_services(config: Config, provider: Optional[SearchProvider] = None) -> Services:
    """Replace the service container, e.g. with a test database and provider."""
    global container
    container = build_services(config, provider)
    return container


# ==================== Helpers ====================

def _bearer_token() -> Optional[str]:
    header = request.headers.get('Authorization', '')
    scheme, _, token = header.partition(' ')
    if scheme.lower() != 'bearer':
        return None
    return token.strip() or None


def _optional_identity() -> Optional[Identity]:
    """Viewer for public routes; an unusable token means anonymous."""
    token = _bearer_token()
    if not token:
        return None
    try:
        return get_services().tokens.verify(token)
    except Unauthenticated as e:
        logger.debug(f"Ignoring credential on public route: {e}")
        return None


async def _parse_body(model: Type[ModelT]) -> ModelT:
    data = await request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidArgument("JSON object body required")
    try:
        return model.model_validate(data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get('loc', ()))
        raise InvalidArgument(f"{field}: {first.get('msg')}" if field else first.get('msg'))


def _comment_id(raw: str) -> int:
    # Non-numeric ids can never exist; answer exactly like a missing comment
    try:
        return int(raw)
    except ValueError:
        raise NotFoundOrForbidden("Comment not found or unauthorized")


# ==================== Decorators ====================

def token_required(f):
    """
    Decorator to require a valid bearer token.
    The verified Identity is passed as the first argument of the route.
    """
    @wraps(f)
    async def decorated_function(*args, **kwargs):
        identity = get_services().tokens.verify(_bearer_token())
        return await f(identity, *args, **kwargs)
    return decorated_function


# ==================== Startup ====================

@app.before_serving
async def startup():
    """Initialize database tables on startup."""
    await get_services().database.init_tables()
    logger.info("API started, database initialized")


# ==================== Auth Routes ====================

@app.route('/ping')
async def ping():
    return jsonify({'message': 'pong'})


@app.route('/register', methods=['POST'])
async def register():
    body = await _parse_body(CredentialsRequest)
    svc = get_services()
    identity = await svc.users.register(body.username, body.password)
    token = svc.tokens.issue(identity)
    return jsonify({'token': token, 'username': identity.username}), 201


@app.route('/login', methods=['POST'])
async def login():
    body = await _parse_body(CredentialsRequest)
    svc = get_services()
    identity = await svc.users.authenticate(body.username, body.password)
    return jsonify({'token': svc.tokens.issue(identity), 'username': identity.username})


# ==================== Search ====================

@app.route('/search')
async def search():
    """Search (or browse recent, when q is blank) with ratings and comments."""
    query = request.args.get('q')
    page = request.args.get('page', default=0, type=int)
    limit = request.args.get('limit', default=None, type=int)

    result = await get_services().aggregator.fetch_page(
        query, page=page, limit=limit, viewer=_optional_identity()
    )
    return jsonify(result.to_dict())


# ==================== Ratings ====================

@app.route('/ratings/<item_id>')
async def list_ratings(item_id: str):
    ratings = await get_services().store.list_ratings(item_id)
    return jsonify([r.to_dict() for r in ratings])


@app.route('/rate', methods=['POST'])
@token_required
async def rate(identity: Identity):
    body = await _parse_body(RateRequest)
    rating, created = await get_services().store.rate(identity.user_id, body.item_id, body.rating)
    if created:
        return jsonify({'message': 'Rating created', 'rating': rating.to_dict()}), 201
    return jsonify({'message': 'Rating updated', 'rating': rating.to_dict()})


@app.route('/rate/<item_id>', methods=['DELETE'])
@token_required
async def delete_rating(identity: Identity, item_id: str):
    await get_services().store.delete_rating(identity.user_id, item_id)
    return jsonify({'message': 'Rating deleted'})


# ==================== Comments ====================

@app.route('/comments/<item_id>')
async def list_comments(item_id: str):
    comments = await get_services().store.list_comments(item_id)
    return jsonify([c.to_dict() for c in comments])


@app.route('/comments', methods=['POST'])
@token_required
async def add_comment(identity: Identity):
    body = await _parse_body(CommentCreateRequest)
    comment = await get_services().store.add_comment(identity.user_id, body.item_id, body.text)
    return jsonify(comment.to_dict()), 201


@app.route('/comments/<comment_id>', methods=['PUT'])
@token_required
async def update_comment(identity: Identity, comment_id: str):
    body = await _parse_body(CommentUpdateRequest)
    comment = await get_services().store.update_comment(
        identity.user_id, _comment_id(comment_id), body.text
    )
    return jsonify({'message': 'Comment updated', 'comment': comment.to_dict()})


@app.route('/comments/<comment_id>', methods=['DELETE'])
@token_required
async def delete_comment(identity: Identity, comment_id: str):
    await get_services().store.delete_comment(identity.user_id, _comment_id(comment_id))
    return jsonify({'message': 'Comment deleted'})


# ==================== Error Handlers ====================

@app.errorhandler(AppError)
async def app_error(error: AppError):
    if error.status_code >= 500:
        logger.error(f"{error.kind}: {error.message}")
    return jsonify({'error': error.kind, 'message': error.message}), error.status_code


@app.errorhandler(404)
async def not_found(error):
    return jsonify({'error': 'not_found', 'message': 'Not found'}), 404


@app.errorhandler(500)
async def server_error(error):
    logger.error(f"Unhandled server error: {getattr(error, 'original_exception', error)}")
    return jsonify({'error': 'internal', 'message': 'Server error'}), 500
