# cakeshop/services/catalog_service.py
from sqlalchemy import func

from ..errors import NotFoundError, ValidationError
from ..extensions import db
from ..model import Category, Order, Product
from ..utils.money import D

MAX_LIMIT = 30

# spreadsheet column -> Product attribute
EXPORT_COLUMNS = {
    "ID": "id",
    "Name": "name",
    "Price": "price",
    "Specification": "specification",
    "Tag": "tag",
    "Image URL": "image_url",
    "Category": "category",
}


def get_product(product_id) -> Product:
    p = db.session.get(Product, product_id) if product_id is not None else None
    if not p:
        raise NotFoundError("Product not found")
    return p


def get_catalog_price(product_id):
    """GetCatalogPrice(productId): the current price per kg."""
    return D(get_product(product_id).price)


def ratings_for(product_ids):
    """{product_id: (average rating to one decimal, number of ratings)} for rated products."""
    ids = set(product_ids)
    if not ids:
        return {}
    rows = (
        db.session.query(Order.product_id, func.avg(Order.rating), func.count(Order.rating))
        .filter(Order.product_id.in_(ids), Order.rating.isnot(None))
        .group_by(Order.product_id)
        .all()
    )
    return {pid: (round(float(avg), 1), int(count)) for pid, avg, count in rows}


def as_api_list(products):
    ratings = ratings_for(p.id for p in products)
    return [p.as_api(ratings.get(p.id)) for p in products]


def filter_products(name_contains, limit=MAX_LIMIT):
    """FilterProducts(nameContains): case-insensitive substring match on name."""
    term = (name_contains or "").strip()
    q = Product.query
    if term:
        q = q.filter(Product.name.icontains(term, autoescape=True))
    products = q.order_by(Product.created_at.desc(), Product.id.desc()).limit(limit).all()
    return as_api_list(products)


def search_products(category=None, name_contains=None, min_price=None, max_price=None,
                    min_rating=None, max_rating=None, limit=10):
    q = Product.query
    if category:
        q = q.join(Category).filter(func.lower(Category.name) == category.lower())
    if name_contains:
        q = q.filter(Product.name.icontains(name_contains, autoescape=True))
    if min_price is not None:
        q = q.filter(Product.price >= min_price)
    if max_price is not None:
        q = q.filter(Product.price <= max_price)

    limit = min(max(int(limit or 10), 1), MAX_LIMIT)
    products = q.order_by(Product.created_at.desc(), Product.id.desc()).limit(limit).all()
    items = as_api_list(products)

    if min_rating is not None:
        items = [p for p in items if p["averageRating"] >= min_rating]
    if max_rating is not None:
        items = [p for p in items if p["averageRating"] <= max_rating]
    return items


def list_products(q=None, category=None):
    query = Product.query
    if q:
        query = query.filter(Product.name.icontains(q.strip(), autoescape=True))
    if category:
        query = query.join(Category).filter(func.lower(Category.name) == category.strip().lower())
    return as_api_list(query.order_by(Product.id.desc()).all())


def _category_by_name(name):
    name = (name or "").strip().lower()
    if not name:
        return None
    c = Category.query.filter(func.lower(Category.name) == name).first()
    if not c:
        c = Category(name=name)
        db.session.add(c)
        db.session.flush()
    return c


def create_product(data: dict) -> Product:
    name = (data.get("name") or "").strip()
    if not name:
        raise ValidationError("name is required", field="name")
    try:
        price = D(data.get("price"))
    except ArithmeticError:
        raise ValidationError("price must be numeric", field="price")
    if price <= 0:
        raise ValidationError("price must be > 0", field="price")

    p = Product(
        name=name,
        price=price,
        specification=(data.get("specification") or "").strip(),
        tag=(data.get("tag") or "").strip(),
        image_url=data.get("image_url"),
        category=_category_by_name(data.get("category")),
    )
    db.session.add(p)
    db.session.commit()
    return p


# ---------- spreadsheet import / export (pandas) ----------

def products_frame():
    import pandas as pd

    rows = []
    for p in Product.query.order_by(Product.id.asc()).all():
        rows.append({
            "ID": p.id,
            "Name": p.name,
            "Price": float(p.price),
            "Specification": p.specification,
            "Tag": p.tag,
            "Image URL": p.image_url,
            "Category": p.category.name if p.category else None,
        })
    return pd.DataFrame(rows, columns=list(EXPORT_COLUMNS))


def import_products_frame(df) -> int:
    """Insert one product per row; returns the number of rows imported."""
    import pandas as pd

    df = df.rename(columns=lambda c: str(c).strip())
    missing = {"Name", "Price"} - set(df.columns)
    if missing:
        raise ValidationError(f"missing columns: {', '.join(sorted(missing))}")

    count = 0
    for _, row in df.iterrows():
        def cell(col):
            v = row[col] if col in df.columns else None
            return None if v is None or pd.isna(v) else v

        db.session.add(Product(
            name=str(cell("Name")).strip(),
            price=D(cell("Price")),
            specification=str(cell("Specification") or ""),
            tag=str(cell("Tag") or ""),
            image_url=cell("Image URL"),
            category=_category_by_name(cell("Category")),
        ))
        count += 1
    db.session.commit()
    return count
