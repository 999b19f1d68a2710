"""
Flask app serving best-card recommendations
"""

import logging
from typing import List, Optional

from flask import Flask, jsonify, request

from .cards import UnknownCard
from .constants import SEATS
from .inference import InferenceEngine, NoLegalMoveError
from .legality import Play, legal_cards

logger = logging.getLogger(__name__)


class BadRequest(ValueError):
    """Client input that cannot be served"""


def _seat(body: dict, key: str) -> int:
    value = body.get(key)
    if not isinstance(value, int) or isinstance(value, bool) or not 0 <= value < SEATS:
        raise BadRequest(f"{key} must be an integer in 0..{SEATS - 1}")
    return value


def _table(body: dict) -> List[Play]:
    raw = body.get("table")
    if raw is None:
        return []
    if not isinstance(raw, list):
        raise BadRequest("table must be a list")
    plays = []
    for slot in raw:
        if slot is None:
            plays.append(Play())
            continue
        if not isinstance(slot, dict):
            raise BadRequest("table entries must be objects with 'player' and 'card'")
        player = slot.get("player")
        if player is not None and (not isinstance(player, int) or isinstance(player, bool)):
            raise BadRequest("table player must be an integer")
        card = slot.get("card")
        if card is not None and not isinstance(card, str):
            raise BadRequest("table card must be a string")
        plays.append(Play(player=player, card=card))
    return plays


def parse_request(body, default_top_k: int = 3) -> dict:
    """Validate a best-card request body; raises BadRequest"""
    if not isinstance(body, dict):
        raise BadRequest("Request body must be a JSON object")
    hand = body.get("hand")
    if not isinstance(hand, list) or not hand or not all(isinstance(c, str) for c in hand):
        raise BadRequest("hand must be a non-empty list of card codes")
    trump = body.get("trump")
    if not isinstance(trump, str) or not trump.strip():
        raise BadRequest("trump must not be blank")
    top_k = body.get("topK")
    if top_k is None:
        top_k = default_top_k
    elif not isinstance(top_k, int) or isinstance(top_k, bool) or top_k < 1:
        raise BadRequest("topK must be a positive integer")
    return {
        "hand": hand,
        "table": _table(body),
        "trump": trump.strip(),
        "player_position": _seat(body, "playerPosition"),
        "partner_position": _seat(body, "partnerPosition"),
        "leader_position": _seat(body, "leaderPosition"),
        "top_k": top_k,
        "request_id": body.get("requestId"),
    }


def create_app(engine: Optional[InferenceEngine] = None, default_top_k: int = 3) -> Flask:
    app = Flask(__name__)
    engine = engine or InferenceEngine(None)
    app.config["INFERENCE_ENGINE"] = engine

    @app.route("/health", methods=["GET"])
    def health():
        return jsonify({"status": "ready", "model": engine.model_name}), 200

    @app.route("/v1/best-card", methods=["POST"])
    def best_card():
        try:
            req = parse_request(request.get_json(silent=True), default_top_k)
            legal = legal_cards(req["hand"], req["table"], req["trump"],
                                req["partner_position"], req["leader_position"])
        except (BadRequest, UnknownCard) as e:
            logger.info("Rejected best-card request: %s", e)
            return jsonify({"error": str(e)}), 400

        try:
            result = engine.pick_best(req["hand"], req["table"], req["trump"], legal, req["top_k"])
        except NoLegalMoveError as e:
            return jsonify({"error": str(e), "legalCards": []}), 422

        body = result.to_dict()
        body["requestId"] = req["request_id"]
        return jsonify(body), 200

    return app
