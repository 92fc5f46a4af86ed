"""Tests for subset selection."""
from pg_schema_subset.parser import (
    ParsedEnum,
    ParsedForeignKey,
    ParsedTable,
    parse_create_table,
    parse_schema_dump,
)
from pg_schema_subset.subset import (
    build_subset,
    filter_tables_by_prefix,
    find_relevant_foreign_keys,
    find_used_enums,
    is_whitelisted,
    referenced_type_names,
)


def make_table(name, schema="public"):
    return ParsedTable(schema_name=schema, table_name=name, create_statement="")


def make_fk(from_table, to_table, from_schema="public", to_schema="public"):
    return ParsedForeignKey(
        statement=f"ALTER TABLE {from_schema}.{from_table} ADD CONSTRAINT fk_{from_table}_{to_table} "
                  f"FOREIGN KEY (x_id) REFERENCES {to_schema}.{to_table}(id);",
        name=f"fk_{from_table}_{to_table}",
        from_schema=from_schema,
        from_table=from_table,
        to_schema=to_schema,
        to_table=to_table,
    )


class TestPrefixFilter:
    """Test exact-delimiter prefix matching."""

    def test_requires_underscore_delimiter(self):
        """Should match prefix_foo but not prefixed_foo."""
        tables = [make_table("prefix_foo"), make_table("prefixed_foo"), make_table("prefix")]

        assert [t.table_name for t in filter_tables_by_prefix(tables, "prefix")] == ["prefix_foo"]

    def test_case_insensitive(self):
        """Should ignore case on both sides."""
        tables = [make_table("Billing_Invoices"), make_table("billing_lines")]

        assert len(filter_tables_by_prefix(tables, "BILLING")) == 2

    def test_source_order_kept(self):
        """Should keep source order."""
        tables = [make_table("app_b"), make_table("other"), make_table("app_a")]

        assert [t.table_name for t in filter_tables_by_prefix(tables, "app")] == ["app_b", "app_a"]


class TestEnumUsage:
    """Test enum detection from column types."""

    def test_trailing_clauses_ignored(self):
        """Should match public.status_enum with DEFAULT and NOT NULL after it."""
        table = parse_create_table(
            "CREATE TABLE public.jobs (\n"
            "    id bigint NOT NULL,\n"
            "    status public.status_enum DEFAULT 'queued'::public.status_enum NOT NULL\n"
            ");\n"
        )
        enum = ParsedEnum(schema_name="public", enum_name="status_enum", create_statement="")

        assert "public.status_enum" in referenced_type_names(table)
        assert find_used_enums([table], [enum]) == [enum]

    def test_not_null_only(self):
        """Should match a type followed directly by NOT NULL."""
        table = parse_create_table(
            "CREATE TABLE public.jobs (\n    status public.status_enum NOT NULL\n);\n"
        )
        enum = ParsedEnum(schema_name="public", enum_name="status_enum", create_statement="")

        assert find_used_enums([table], [enum]) == [enum]

    def test_case_insensitive_and_quoted(self):
        """Should compare schema.name without case and quotes."""
        table = parse_create_table(
            'CREATE TABLE public.jobs (\n    status "Public"."Status_Enum"[]\n);\n'
        )
        enum = ParsedEnum(schema_name="public", enum_name="status_enum", create_statement="")

        assert find_used_enums([table], [enum]) == [enum]

    def test_other_schema_not_matched(self):
        """Should require the schema to match too."""
        table = parse_create_table(
            "CREATE TABLE public.jobs (\n    status audit.status_enum\n);\n"
        )
        enum = ParsedEnum(schema_name="public", enum_name="status_enum", create_statement="")

        assert find_used_enums([table], [enum]) == []

    def test_prefix_of_longer_name_not_matched(self):
        """Should not match public.status inside public.status_enum."""
        table = parse_create_table(
            "CREATE TABLE public.jobs (\n    status public.status_enum\n);\n"
        )
        enum = ParsedEnum(schema_name="public", enum_name="status", create_statement="")

        assert find_used_enums([table], [enum]) == []

    def test_enums_in_source_order(self):
        """Should return used enums in definition order, once each."""
        table = parse_create_table(
            "CREATE TABLE public.jobs (\n    b public.b_enum,\n    a public.a_enum,\n    c public.b_enum\n);\n"
        )
        a_enum = ParsedEnum(schema_name="public", enum_name="a_enum", create_statement="")
        b_enum = ParsedEnum(schema_name="public", enum_name="b_enum", create_statement="")

        assert find_used_enums([table], [a_enum, b_enum]) == [a_enum, b_enum]


class TestForeignKeyRelevance:
    """Test which constraints are kept."""

    def test_either_endpoint_matched(self):
        """Should keep constraints touching a matched table in either direction."""
        matched = [make_table("b")]
        outgoing = make_fk("b", "d")
        incoming = make_fk("d", "b")
        unrelated = make_fk("x", "y")

        kept = find_relevant_foreign_keys([outgoing, incoming, unrelated], matched, [])

        assert kept == [outgoing, incoming]

    def test_whitelist_by_bare_name(self):
        """Should keep constraints touching a whitelisted name in any schema."""
        fk = make_fk("b", "d", from_schema="a", to_schema="c")

        assert find_relevant_foreign_keys([fk], [], ["D"]) == [fk]
        assert find_relevant_foreign_keys([fk], [], ["b"]) == [fk]
        assert find_relevant_foreign_keys([fk], [], ["other"]) == []

    def test_matched_compares_schema(self):
        """Should not treat a same-named table in another schema as matched."""
        fk = make_fk("b", "d", from_schema="a", to_schema="c")

        assert find_relevant_foreign_keys([fk], [make_table("b", schema="public")], []) == []


class TestBuildSubset:
    """Test the complete selection on a dump."""

    def test_without_whitelist(self, structure_sql):
        """Should select matched, related, enums and foreign keys."""
        subset = build_subset(parse_schema_dump(structure_sql), "submissions")

        assert [t.table_name for t in subset.matched_tables] == ["submissions_forms", "submissions_answers"]
        assert [t.table_name for t in subset.related_tables] == ["users", "audit_logs", "comments"]
        assert [e.enum_name for e in subset.used_enums] == ["form_status"]
        assert [fk.name for fk in subset.foreign_keys] == [
            "fk_rails_aaa111", "fk_rails_bbb222", "fk_rails_ccc333",
        ]
        assert subset.whitelisted_related == []

    def test_whitelisted_related_contributes_enums(self, structure_sql):
        """Should add enums and foreign keys of whitelisted related tables."""
        subset = build_subset(parse_schema_dump(structure_sql), "submissions", ["Users"])

        assert [e.enum_name for e in subset.used_enums] == ["form_status", "user_role"]
        assert [t.table_name for t in subset.whitelisted_related] == ["users"]
        assert "fk_rails_ddd444" in [fk.name for fk in subset.foreign_keys]

    def test_prefix_match_wins_over_whitelist(self, structure_sql):
        """Should emit a prefix-matched whitelisted table through the prefix path only."""
        subset = build_subset(parse_schema_dump(structure_sql), "submissions", ["submissions_forms"])

        assert "submissions_forms" in [t.table_name for t in subset.matched_tables]
        assert "submissions_forms" not in [t.table_name for t in subset.related_tables]

    def test_no_matches(self, structure_sql):
        """Should return an empty subset for an unknown prefix."""
        subset = build_subset(parse_schema_dump(structure_sql), "nothing")

        assert subset.matched_tables == []
        assert subset.related_tables == []
        assert subset.used_enums == []
        assert subset.foreign_keys == []

    def test_is_whitelisted(self):
        """Should compare bare names without case."""
        assert is_whitelisted("Users", ["users"])
        assert not is_whitelisted("users", ["public.users"])

    def test_table_after_dollar_in_comment_text(self):
        """Should match a table that follows a COMMENT containing $$."""
        sql = (
            "COMMENT ON TABLE public.app_x IS 'cost is $$ money';\n"
            "CREATE TABLE public.app_x (\n"
            "    id bigint NOT NULL\n"
            ");\n"
        )

        subset = build_subset(parse_schema_dump(sql), "app")

        assert [t.table_name for t in subset.matched_tables] == ["app_x"]
