from flask import request, jsonify

from . import bp
from ..services import catalog_service
from ..utils.api import api_ok
from ..utils.net import json_body
from ..utils.decorators import role_required


@bp.get("")
def list_products():
    products = catalog_service.list_products(
        q=request.args.get("q"),
        category=request.args.get("category"),
    )
    return jsonify(api_ok("Products fetched", data={"products": products, "count": len(products)}))


@bp.get("/<int:product_id>")
def get_product(product_id):
    p = catalog_service.get_product(product_id)
    rating = catalog_service.ratings_for([p.id]).get(p.id)
    return jsonify(api_ok("Product fetched", data={"product": p.as_api(rating)}))


@bp.post("")
@role_required("admin", message="Only admins can add products")
def create_product():
    p = catalog_service.create_product(json_body())
    return jsonify(api_ok("Product created", data={"product": p.as_api()})), 201
