from flask import Blueprint, request
from flask_jwt_extended import jwt_required, get_jwt_identity

from freelancedash.extensions import db
from freelancedash.schemas.contract_schema import ContractSignSchema
from freelancedash.services.contract_service import (
    get_contract,
    get_contract_for_project,
    sign_contract,
)
from freelancedash.utils.response_formatter import success_response
from freelancedash.utils.validation import load_or_raise

bp = Blueprint("contracts", __name__, url_prefix="/api/contracts")


@bp.route("/<contract_id>", methods=["GET"])
@jwt_required()
def read_contract(contract_id):
    contract = get_contract(db.session, contract_id, get_jwt_identity())
    return success_response({"contract": contract.to_dict()})


@bp.route("/project/<project_id>", methods=["GET"])
@jwt_required()
def read_project_contract(project_id):
    contract = get_contract_for_project(db.session, project_id, get_jwt_identity())
    return success_response({"contract": contract.to_dict()})


@bp.route("/<contract_id>/sign", methods=["POST"])
@jwt_required()
def sign(contract_id):
    data = load_or_raise(ContractSignSchema(), request.get_json(silent=True))
    contract, invoice = sign_contract(db.session, contract_id, get_jwt_identity(), data["signature"])
    return success_response({
        "contract": contract.to_dict(),
        "invoice": invoice.to_dict() if invoice else None,
    })
