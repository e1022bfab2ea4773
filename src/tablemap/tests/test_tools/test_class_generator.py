import asyncio
import io
import types

import pytest

from tablemap.cli import build_parser, class_generate, main
from tablemap.models import ModelObject
from tablemap.tools.class_generator import (
    build_model_info,
    const_name,
    describe_table,
    parse_describe_output,
    render_model_module,
)
from tablemap.exceptions import SQLError
from tablemap.tests.test_fixtures.model_fixtures import Membership

DESCRIBE_OUTPUT = """\
Field       Type          Null  Key  Default  Extra
----------  ------------  ----  ---  -------  --------------
id          int(11)       NO    PRI  NULL     auto_increment
name        varchar(64)   YES        NULL
price       decimal(8,2)  NO         0.00
2fa         varchar(8)    YES        NULL
created_at  datetime      YES        NULL
"""


def load_module(source: str) -> types.ModuleType:
    module = types.ModuleType("generated_model")
    exec(compile(source, "generated_model.py", "exec"), module.__dict__)
    return module


class TestParseDescribeOutput:

    def test_values_are_cut_at_header_offsets(self):
        table_def = parse_describe_output(io.StringIO(DESCRIBE_OUTPUT))

        assert [column["Field"] for column in table_def] == ["id", "name", "price", "2fa", "created_at"]
        assert table_def[0] == {
            "Field": "id",
            "Type": "int(11)",
            "Null": "NO",
            "Key": "PRI",
            "Default": "NULL",
            "Extra": "auto_increment",
        }
        # blank cells are empty strings
        assert table_def[1]["Key"] == ""
        assert table_def[1]["Extra"] == ""

    def test_separator_and_blank_lines_are_skipped(self):
        lines = ["Field Type Key Extra", "-----", "", "id    int  PRI auto_increment"]

        assert parse_describe_output(lines) == [
            {"Field": "id", "Type": "int", "Key": "PRI", "Extra": "auto_increment"}
        ]

    def test_empty_input(self):
        assert parse_describe_output([]) == []


class TestModelInfo:

    @pytest.mark.parametrize(
        "field, const",
        [("id", "ID"), ("first name", "FIRST_NAME"), ("2fa", "_2FA"), ("price-eur", "PRICE_EUR")],
    )
    def test_const_name(self, field, const):
        assert const_name(field) == const

    def test_primary_key_and_auto_increment(self):
        info = build_model_info([
            {"Field": "group_id", "Type": "int", "Key": "PRI", "Extra": ""},
            {"Field": "user_id", "Type": "bigint", "Key": "PRI", "Extra": ""},
            {"Field": "role", "Type": "varchar(8)", "Key": "", "Extra": ""},
        ])

        assert info.pk == ["GROUP_ID", "USER_ID"]
        assert info.auto is None
        assert [column.annotation for column in info.columns] == ["int", "int", "str"]
        assert [column.column_type for column in info.columns] == ["int", "int", None]

    def test_accessors_never_shadow_model_object_methods(self):
        """
        Behavior:
            - Columns named like ModelObject's own get_*/set_* methods get
              suffixed accessors; the inherited methods keep working.

        Importance:
            - Database relies on get_initial_pk() and get_dirty_fields(); a generated
              get_initial_pk() returning a column value would break update() and load().
        """
        info = build_model_info([
            {"Field": "id", "Type": "int", "Key": "PRI", "Extra": ""},
            {"Field": "initial_pk", "Type": "varchar(8)", "Key": "", "Extra": ""},
            {"Field": "dirty_fields", "Type": "varchar(8)", "Key": "", "Extra": ""},
            {"Field": "all_dirty", "Type": "varchar(8)", "Key": "", "Extra": ""},
        ])

        assert [column.accessor for column in info.columns] == [
            "id", "initial_pk_column", "dirty_fields_column", "all_dirty_column",
        ]

        source = render_model_module(info, "audits", "Audit")
        audit = load_module(source).Audit()
        audit.set_initial_pk_column("x").assign("id", 3)

        assert audit.get_initial_pk_column() == "x"
        assert audit.get_initial_pk() == {"id": None}
        assert audit.get_dirty_fields() == ["initial_pk", "id"]
        assert "def get_initial_pk(" not in source


class TestRenderModelModule:

    def test_generated_module_defines_a_working_model(self):
        """
        Behavior:
            - Render a module from a DESCRIBE output and execute it.
            - The class maps the table, its fields, key, auto-increment column and
              exposes typed accessors.

        Importance:
            - The output is meant to be saved as-is in the application; it must be
              valid Python and behave like a hand-written model.
        """
        info = build_model_info(parse_describe_output(io.StringIO(DESCRIBE_OUTPUT)))
        source = render_model_module(info, "products", "Product", module_doc="Products of the shop.")

        module = load_module(source)
        generated = module.Product

        assert issubclass(generated, ModelObject)
        assert module.__doc__.strip() == "Products of the shop."
        assert generated.table_name() == "products"
        assert list(generated.map_fields()) == ["id", "name", "price", "2fa", "created_at"]
        assert generated.ID == "id"
        assert generated._2FA == "2fa"
        assert generated.column_types == {"id": "int"}

        product = generated()
        assert product.map_pk() == ["id"]
        assert product.map_auto_increment() == "id"
        assert product.set_name("lamp") is product
        assert product.get_name() == "lamp"
        assert product.set_2fa("123456").get_2fa() == "123456"

        assert "from decimal import Decimal" in source
        assert "def get_price(self) -> Decimal | None:" in source
        assert "def get_created_at(self) -> datetime | None:" in source

    def test_no_pk_no_auto_increment_methods(self):
        info = build_model_info([{"Field": "value", "Type": "text", "Key": "", "Extra": ""}])

        source = render_model_module(info, "settings", "Setting")

        assert "def map_pk" not in source
        assert "def map_auto_increment" not in source
        assert "column_types" not in source
        assert source.startswith("from tablemap import ModelObject\n")
        assert load_module(source).Setting().map_pk() == []


@pytest.mark.asyncio
class TestDescribeTable:

    async def test_sqlite_pragma_is_translated(self, products):
        table_def = await describe_table(products, "products")

        assert [column["Field"] for column in table_def] == ["id", "name", "price", "Label Text"]
        assert table_def[0]["Key"] == "PRI"
        assert table_def[0]["Extra"] == "auto_increment"
        assert table_def[2]["Type"] == "integer"
        assert table_def[1]["Key"] == ""

    async def test_composite_key_has_no_auto_increment(self, memberships):
        info = build_model_info(await describe_table(memberships, "memberships"))

        assert info.pk == ["GROUP_ID", "USER_ID"]
        assert info.auto is None

    async def test_missing_table(self, database):
        with pytest.raises(SQLError, match="No such table"):
            await describe_table(database, "nowhere")


class TestCommandLine:

    def run(self, argv, stdin=""):
        args = build_parser().parse_args(["class:generate", *argv])
        stdout, stderr = io.StringIO(), io.StringIO()
        code = class_generate(args, stdin=io.StringIO(stdin), stdout=stdout, stderr=stderr)
        return code, stdout.getvalue(), stderr.getvalue()

    @pytest.mark.parametrize(
        "argv, message",
        [
            (["--table", "t", "--class", "T"], "Missing --dsn option."),
            (["--desc", "--dsn", "sqlite+aiosqlite://", "--table", "t", "--class", "T"],
             "Cannot use both --dsn and --desc options."),
            (["--dsn", "mysql+aiomysql://db/shop", "--table", "t", "--class", "T"], "Missing --username option."),
            (["--desc", "--class", "T"], "Missing --table option."),
            (["--desc", "--table", "t"], "Missing --class option."),
            (["--desc", "--table", "t", "--class", "not a class"], "Invalid --class name"),
        ],
    )
    def test_validation_errors_exit_with_1(self, argv, message):
        code, stdout, stderr = self.run(argv)

        assert code == 1
        assert message in stderr
        assert stdout == ""

    def test_desc_mode_reads_stdin(self):
        code, stdout, stderr = self.run(["--desc", "--table", "products", "--class", "Product"], DESCRIBE_OUTPUT)

        assert code == 0
        assert "class Product(ModelObject):" in stdout
        assert "return 'products'" in stdout

    def test_desc_mode_with_empty_stdin_fails(self):
        code, stdout, stderr = self.run(["--desc", "--table", "products", "--class", "Product"], "")

        assert code == 1
        assert "No column found" in stderr

    async def test_dsn_mode_describes_a_live_sqlite_table(self, memberships, database_url):
        # class_generate drives its own event loop
        code, stdout, stderr = await asyncio.to_thread(
            self.run, ["--dsn", database_url, "--table", "memberships", "--class", "Membership"]
        )

        assert code == 0, stderr
        assert "[OK]" in stderr
        module = load_module(stdout)
        assert module.Membership().map_pk() == [Membership.GROUP_ID, Membership.USER_ID]
        assert module.Membership.map_fields() == {"group_id": None, "user_id": None, "role": None}

    def test_dsn_mode_reports_sql_errors(self, tmp_path):
        dsn = f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}"

        code, stdout, stderr = self.run(["--dsn", dsn, "--table", "nowhere", "--class", "Nowhere"])

        assert code == 1
        assert "No such table" in stderr

    def test_dsn_mode_reports_unreachable_database(self, tmp_path):
        dsn = f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'x.db'}"

        code, stdout, stderr = self.run(["--dsn", dsn, "--table", "products", "--class", "Product"])

        assert code == 1
        assert stdout == ""
        assert "[FAILED]" in stderr
        assert "unable to open database file" in stderr

    def test_main_entry_point(self, monkeypatch, capsys):
        monkeypatch.setattr("sys.stdin", io.StringIO(DESCRIBE_OUTPUT))
        monkeypatch.setattr("tablemap.cli.setup_logging", lambda settings: None)

        code = main(["class:generate", "--desc", "--table", "products", "--class", "Product"])

        assert code == 0
        assert "class Product(ModelObject):" in capsys.readouterr().out

