"""Model classes and fixtures shared by the model, database and structure tests."""

import pytest

from tablemap.database import Database
from tablemap.models import ModelObject


class Product(ModelObject):
    """Auto-increment primary key."""

    ID = "id"
    NAME = "name"
    PRICE = "price"
    LABEL = "Label Text"

    column_types = {PRICE: "int"}
    accessor_aliases = {"title": NAME}

    @classmethod
    def table_name(cls):
        return "products"

    @classmethod
    def map_fields(cls):
        return {cls.ID: None, cls.NAME: None, cls.PRICE: 0, cls.LABEL: None}

    def map_pk(self):
        return [self.ID]

    def map_auto_increment(self):
        return self.ID


class Membership(ModelObject):
    """Composite primary key, no auto-increment."""

    GROUP_ID = "group_id"
    USER_ID = "user_id"
    ROLE = "role"

    column_types = {GROUP_ID: "int", USER_ID: "int"}

    @classmethod
    def table_name(cls):
        return "memberships"

    @classmethod
    def map_fields(cls):
        return {cls.GROUP_ID: None, cls.USER_ID: None, cls.ROLE: "member"}

    def map_pk(self):
        return [self.GROUP_ID, self.USER_ID]


class Tag(ModelObject):
    """Key column without a unique constraint: several rows may share a label."""

    LABEL = "label"
    WEIGHT = "weight"

    column_types = {WEIGHT: "int"}

    @classmethod
    def table_name(cls):
        return "tags"

    @classmethod
    def map_fields(cls):
        return {cls.LABEL: None, cls.WEIGHT: None}

    def map_pk(self):
        return [self.LABEL]


class Setting(ModelObject):
    """Maps no primary key."""

    VALUE = "value"

    @classmethod
    def table_name(cls):
        return "settings"

    @classmethod
    def map_fields(cls):
        return {cls.VALUE: None}


class Attachment(ModelObject):
    """Binary payload column."""

    ID = "id"
    DATA = "data"

    @classmethod
    def table_name(cls):
        return "attachments"

    @classmethod
    def map_fields(cls):
        return {cls.ID: None, cls.DATA: None}

    def map_pk(self):
        return [self.ID]

    def map_auto_increment(self):
        return self.ID


class OrderLine(ModelObject):
    """References products through a foreign key checked at commit time."""

    ID = "id"
    PRODUCT_ID = "product_id"

    @classmethod
    def table_name(cls):
        return "order_lines"

    @classmethod
    def map_fields(cls):
        return {cls.ID: None, cls.PRODUCT_ID: None}

    def map_pk(self):
        return [self.ID]

    def map_auto_increment(self):
        return self.ID


class Unfinished(ModelObject):
    """Forgets to declare its table and fields."""


@pytest.fixture
async def products(database: Database) -> Database:
    """
    The `products` table, created in the per-test database.
    """
    await database.get_structure_manager().create_table(Product)
    return database


@pytest.fixture
async def memberships(database: Database) -> Database:
    await database.get_structure_manager().create_table(Membership)
    return database


@pytest.fixture
async def tags(database: Database) -> Database:
    """
    `tags` without its primary key, so that duplicate labels can be stored.
    """
    await database.execute("create table tags (label text, weight integer)")
    return database


@pytest.fixture
async def create_product(products: Database):
    """
    Factory inserting a product:

        product = await create_product(name="lamp", price=12)
    """
    async def _create(**values):
        product = Product()
        product.assign(Product.NAME, values.get("name", "lamp"))
        product.assign(Product.PRICE, values.get("price", 10))
        await products.insert(product)
        return product

    return _create


@pytest.fixture
async def attachments(database: Database) -> Database:
    await database.execute("create table attachments (id integer primary key, data blob)")
    return database


@pytest.fixture
async def order_lines(products: Database) -> Database:
    """
    `order_lines.product_id` references `products`, enforced only at commit.
    """
    await products.execute("pragma foreign_keys = on")
    await products.execute(
        "create table order_lines (id integer primary key, "
        "product_id integer references products (id) deferrable initially deferred)"
    )
    return products
