"""Unit tests for the heuristic SQL -> IR parser."""

import pytest
from visual_query import parse_sql_to_ir, classify_statement, SequentialIdFactory
from visual_query.ir_types import FilterCondition, FilterGroup


def parse(sql):
    return parse_sql_to_ir(sql, id_factory=SequentialIdFactory())


class TestBasicSelect:
    """Test basic SELECT queries."""

    def test_select_star(self):
        """SELECT * leaves the column list empty and marks the table"""
        ir = parse("SELECT * FROM users")
        assert ir.statement_type == 'SELECT'
        assert ir.tables[0].name == 'users'
        assert ir.tables[0].selected_columns == ['*']
        assert ir.selected_columns == []

    def test_select_columns(self):
        """Bare columns are anchored to the FROM table"""
        ir = parse("SELECT name, email FROM users")
        assert [c.column_name for c in ir.selected_columns] == ['name', 'email']
        assert all(c.table_id == 'table_1' for c in ir.selected_columns)

    def test_select_with_alias(self):
        """Test SELECT with column alias"""
        ir = parse("SELECT name AS user_name, email FROM users")
        assert ir.selected_columns[0].column_name == 'name'
        assert ir.selected_columns[0].alias == 'user_name'
        assert ir.selected_columns[1].alias is None

    def test_distinct(self):
        ir = parse("SELECT DISTINCT city FROM users")
        assert ir.distinct is True
        assert ir.selected_columns[0].column_name == 'city'

    def test_trailing_semicolon(self):
        ir = parse("SELECT id FROM users;")
        assert ir.tables[0].name == 'users'
        assert ir.tables[0].alias is None

    def test_metadata(self):
        ir = parse("SELECT id FROM users")
        assert ir.name == 'Imported SQL Query'
        assert ir.description == 'Imported SELECT query from SQL'

    def test_no_where_means_no_filters(self):
        assert parse("SELECT id FROM users").filters is None


class TestAliases:
    """Test table alias capture."""

    def test_table_alias(self):
        ir = parse("SELECT u.id FROM users u")
        assert ir.tables[0].alias == 'u'
        assert ir.selected_columns[0].table_id == ir.tables[0].id

    def test_as_alias(self):
        ir = parse("SELECT u.id FROM users AS u")
        assert ir.tables[0].alias == 'u'

    def test_alias_does_not_swallow_where(self):
        """A clause keyword after the table is never taken as its alias"""
        ir = parse("SELECT * FROM users WHERE id = 1")
        assert ir.tables[0].alias is None
        assert ir.filters.children[0].column == 'id'

    def test_alias_does_not_swallow_join_keywords(self):
        ir = parse("SELECT * FROM users LEFT JOIN orders ON users.id = orders.user_id")
        assert ir.tables[0].alias is None
        assert ir.tables[1].alias is None
        assert ir.joins[0].join_type == 'LEFT'

    def test_subquery_in_select_list_does_not_become_from(self):
        """Only a top-level FROM names the anchor table"""
        ir = parse("SELECT (SELECT MAX(id) FROM b) AS m FROM a")
        assert [t.name for t in ir.tables] == ['a']
        assert ir.selected_columns[0].expression == '(SELECT MAX(id) FROM b)'
        assert ir.selected_columns[0].alias == 'm'


class TestJoins:
    """Test JOIN extraction."""

    def test_inner_join(self):
        """Orders joined to customers through an aliased ON clause"""
        ir = parse("SELECT o.id, c.name FROM orders o JOIN customers c ON o.customer_id = c.id")
        assert [t.name for t in ir.tables] == ['orders', 'customers']
        assert [t.id for t in ir.tables] == ['table_1', 'table_2']

        join = ir.joins[0]
        assert join.id == 'join_1'
        assert join.join_type == 'INNER'
        assert join.from_table_id == 'table_1'
        assert join.to_table_id == 'table_2'
        assert join.conditions[0].from_column == 'customer_id'
        assert join.conditions[0].to_column == 'id'

        assert ir.selected_columns[0].table_id == 'table_1'
        assert ir.selected_columns[1].table_id == 'table_2'

    def test_compound_join_type_kept_verbatim(self):
        ir = parse("SELECT * FROM a LEFT OUTER JOIN b ON a.id = b.a_id")
        assert ir.joins[0].join_type == 'LEFT OUTER'

    @pytest.mark.parametrize("join_type", ["LEFT ANTI", "RIGHT SEMI", "NATURAL"])
    def test_extended_join_keywords(self, join_type):
        ir = parse(f"SELECT * FROM a {join_type} JOIN b ON a.id = b.a_id")
        assert [t.name for t in ir.tables] == ['a', 'b']
        assert ir.joins[0].join_type == join_type
        assert ir.joins[0].from_table_id == 'table_1'

    def test_multiple_join_conditions(self):
        ir = parse("SELECT * FROM a JOIN b ON a.id = b.a_id AND a.region <> b.region")
        conditions = ir.joins[0].conditions
        assert len(conditions) == 2
        assert conditions[1].operator == '!='

    def test_reversed_on_clause_is_swapped(self):
        """Conditions naming the joined table first are flipped"""
        ir = parse("SELECT * FROM users u JOIN orders o ON o.user_id = u.id")
        join = ir.joins[0]
        assert join.from_table_id == 'table_1'
        assert join.to_table_id == 'table_2'
        assert join.conditions[0].from_column == 'id'
        assert join.conditions[0].to_column == 'user_id'

    def test_chained_joins(self):
        ir = parse(
            "SELECT * FROM a "
            "JOIN b ON a.id = b.a_id "
            "LEFT JOIN c ON b.id = c.b_id "
            "WHERE a.x = 1"
        )
        assert [j.join_type for j in ir.joins] == ['INNER', 'LEFT']
        assert ir.joins[1].from_table_id == 'table_2'
        assert ir.joins[1].to_table_id == 'table_3'
        assert len(ir.filters.children) == 1

    def test_cross_join_without_on(self):
        ir = parse("SELECT * FROM a CROSS JOIN b")
        assert ir.joins[0].join_type == 'CROSS'
        assert ir.joins[0].conditions == []
        assert ir.joins[0].from_table_id == 'table_1'


class TestAggregates:
    """Test aggregate and expression columns."""

    def test_aggregate_functions(self):
        ir = parse("SELECT COUNT(DISTINCT u.id) AS n, SUM(u.total) FROM users u")
        first, second = ir.selected_columns
        assert first.aggregate_function == 'COUNT_DISTINCT'
        assert first.column_name == 'id'
        assert first.alias == 'n'
        assert second.aggregate_function == 'SUM'
        assert second.column_name == 'total'

    def test_count_star_is_expression(self):
        """Anything that is not a plain column becomes an expression column"""
        ir = parse("SELECT COUNT(*) AS total FROM users")
        col = ir.selected_columns[0]
        assert col.expression == 'COUNT(*)'
        assert col.alias == 'total'
        assert col.table_id == ir.tables[0].id


class TestWhere:
    """Test WHERE clause reconstruction."""

    def test_and_conditions(self):
        ir = parse("SELECT * FROM users WHERE age > 18 AND status = 'active'")
        assert ir.filters.operator == 'AND'
        age, status = ir.filters.children
        assert (age.column, age.operator, age.value) == ('age', '>', 18)
        assert (status.column, status.value) == ('status', 'active')
        assert status.table_id == 'table_1'

    def test_or_of_and_groups(self):
        ir = parse("SELECT * FROM t WHERE a = 1 AND b = 2 OR c = 3")
        assert ir.filters.operator == 'OR'
        group, condition = ir.filters.children
        assert isinstance(group, FilterGroup)
        assert group.operator == 'AND'
        assert [c.column for c in group.children] == ['a', 'b']
        assert isinstance(condition, FilterCondition)
        assert condition.column == 'c'

    def test_parenthesized_compound_conjunct_dropped(self):
        """A parenthesized OR inside an AND is below the two-level tree and is left out"""
        ir = parse("SELECT * FROM t WHERE (a = 1 OR b = 2) AND c = 3")
        assert ir.filters.operator == 'AND'
        assert [child.column for child in ir.filters.children] == ['c']

    def test_deeper_nesting_never_exceeds_two_levels(self):
        ir = parse("SELECT * FROM t WHERE (a = 1 OR (b = 2 AND c = 3)) AND d = 4")
        assert ir.filters.operator == 'AND'
        assert all(isinstance(child, FilterCondition) for child in ir.filters.children)
        assert [child.column for child in ir.filters.children] == ['d']

    def test_parenthesized_and_branch_of_or(self):
        ir = parse("SELECT * FROM t WHERE (a = 1 AND b = 2) OR c = 3")
        assert ir.filters.operator == 'OR'
        group, condition = ir.filters.children
        assert isinstance(group, FilterGroup)
        assert [child.column for child in group.children] == ['a', 'b']
        assert condition.column == 'c'

    def test_between_inside_literal_does_not_merge(self):
        """BETWEEN inside a quoted value does not swallow the next conjunct"""
        ir = parse("SELECT * FROM t WHERE note = 'in between' AND x = 1")
        assert len(ir.filters.children) == 2
        assert ir.filters.children[0].value == 'in between'
        assert ir.filters.children[1].column == 'x'

    def test_wrapping_parentheses_stripped(self):
        ir = parse("SELECT * FROM t WHERE (a = 1)")
        assert ir.filters.children[0].column == 'a'

    def test_quoted_and_or_not_split(self):
        ir = parse("SELECT * FROM t WHERE name = 'Tom AND Jerry' OR name = 'x'")
        assert ir.filters.operator == 'OR'
        assert ir.filters.children[0].value == 'Tom AND Jerry'

    def test_between_kept_together(self):
        ir = parse("SELECT * FROM t WHERE age BETWEEN 18 AND 65 AND active = TRUE")
        between, active = ir.filters.children
        assert between.operator == 'BETWEEN'
        assert between.value == '18 AND 65'
        assert active.value is True

    def test_in_list_kept_raw(self):
        ir = parse("SELECT * FROM t WHERE status IN ('a', 'b')")
        cond = ir.filters.children[0]
        assert cond.operator == 'IN'
        assert cond.value == "'a', 'b'"

    def test_null_checks(self):
        ir = parse("SELECT * FROM t WHERE a IS NULL AND b IS NOT NULL")
        a, b = ir.filters.children
        assert (a.operator, a.value) == ('IS NULL', None)
        assert b.operator == 'IS NOT NULL'

    def test_not_like(self):
        ir = parse("SELECT * FROM t WHERE name NOT LIKE 'A%'")
        cond = ir.filters.children[0]
        assert cond.operator == 'NOT LIKE'
        assert cond.value == 'A%'

    def test_not_equal_normalised(self):
        ir = parse("SELECT * FROM t WHERE a <> 1")
        assert ir.filters.children[0].operator == '!='

    def test_escaped_quote_collapsed(self):
        ir = parse("SELECT * FROM t WHERE name = 'O''Brien'")
        assert ir.filters.children[0].value == "O'Brien"

    def test_numbers(self):
        ir = parse("SELECT * FROM t WHERE a = 1.5 AND b = -3")
        assert ir.filters.children[0].value == 1.5
        assert ir.filters.children[1].value == -3

    def test_exists(self):
        ir = parse("SELECT * FROM users u WHERE EXISTS (SELECT 1 FROM orders o WHERE o.user_id = u.id)")
        cond = ir.filters.children[0]
        assert cond.operator == 'EXISTS'
        assert cond.value == '(SELECT 1 FROM orders o WHERE o.user_id = u.id)'
        assert len(ir.tables) == 1

    def test_qualified_column_resolves_alias(self):
        ir = parse("SELECT * FROM users u JOIN orders o ON u.id = o.user_id WHERE o.total > 10")
        assert ir.filters.children[0].table_id == 'table_2'


class TestGroupOrderLimit:
    """Test trailing clauses."""

    SQL = (
        "SELECT u.city, COUNT(u.id) AS n FROM users u "
        "GROUP BY u.city HAVING COUNT(u.id) > 5 "
        "ORDER BY n DESC LIMIT 10 OFFSET 20"
    )

    def test_group_by(self):
        ir = parse(self.SQL)
        assert [(c.table_id, c.column_name) for c in ir.group_by.columns] == [('table_1', 'city')]

    def test_having_keeps_aggregate_unqualified(self):
        having = parse(self.SQL).group_by.having
        cond = having.children[0]
        assert cond.column == 'COUNT(u.id)'
        assert cond.table_id is None
        assert cond.value == 5

    def test_order_by_select_alias_unqualified(self):
        order = parse(self.SQL).order_by[0]
        assert order.column_name == 'n'
        assert order.table_id is None
        assert order.direction == 'DESC'

    def test_limit_and_offset(self):
        ir = parse(self.SQL)
        assert ir.limit == 10
        assert ir.offset == 20

    def test_order_by_defaults_to_asc(self):
        ir = parse("SELECT * FROM users ORDER BY users.name")
        assert ir.order_by[0].direction == 'ASC'
        assert ir.order_by[0].table_id == 'table_1'

    def test_having_without_group_by(self):
        ir = parse("SELECT COUNT(*) FROM t HAVING COUNT(*) > 1")
        assert ir.group_by.columns == []
        assert ir.group_by.having.children[0].column == 'COUNT(*)'

    def test_fetch_next_is_limit(self):
        ir = parse("SELECT * FROM t ORDER BY id OFFSET 5 ROWS FETCH NEXT 10 ROWS ONLY")
        assert ir.limit == 10
        assert ir.offset == 5

    def test_mysql_limit_offset_pair(self):
        ir = parse("SELECT * FROM t LIMIT 5, 10")
        assert ir.offset == 5
        assert ir.limit == 10


class TestCtesAndUnions:
    """Test WITH blocks and set operations."""

    def test_cte(self):
        ir = parse("WITH recent AS (SELECT * FROM orders WHERE total > 100) SELECT r.user_id FROM recent r")
        assert ir.ctes[0].name == 'recent'
        assert ir.ctes[0].recursive is False
        assert ir.ctes[0].query.tables[0].name == 'orders'
        assert ir.ctes[0].query.filters.children[0].value == 100
        assert ir.tables[0].name == 'recent'
        assert ir.tables[0].alias == 'r'

    def test_multiple_and_recursive_ctes(self):
        ir = parse("WITH RECURSIVE a AS (SELECT * FROM x), b AS (SELECT * FROM y) SELECT * FROM a")
        assert [c.name for c in ir.ctes] == ['a', 'b']
        assert all(c.recursive for c in ir.ctes)

    def test_union_all(self):
        ir = parse("SELECT id FROM a UNION ALL SELECT id FROM b")
        assert [t.name for t in ir.tables] == ['a']
        assert ir.unions[0].kind == 'UNION ALL'
        assert ir.unions[0].query.tables[0].name == 'b'

    def test_union_inside_subquery_not_split(self):
        ir = parse("SELECT * FROM t WHERE id IN (SELECT id FROM a UNION SELECT id FROM b)")
        assert ir.unions is None


class TestNonSelect:
    """Test coarse parsing of other statement kinds."""

    def test_insert(self):
        ir = parse("INSERT INTO users (name, email) VALUES ('a', 'b'), ('c', 'd')")
        assert ir.statement_type == 'INSERT'
        assert ir.description == 'Imported INSERT query from SQL'
        assert ir.insert_into.table == 'users'
        assert ir.insert_into.columns == ['name', 'email']
        assert ir.insert_into.values == [["'a'", "'b'"], ["'c'", "'d'"]]
        assert ir.tables == []

    def test_insert_select(self):
        ir = parse("INSERT INTO archive SELECT * FROM users")
        assert ir.insert_into.table == 'archive'
        assert ir.insert_into.values == []

    def test_update(self):
        ir = parse("UPDATE users SET status = 'x', age = 3 WHERE id = 7")
        assert ir.update_table.table == 'users'
        assert [(s.column, s.value) for s in ir.update_table.sets] == [('status', "'x'"), ('age', '3')]
        cond = ir.filters.children[0]
        assert (cond.table_id, cond.column, cond.value) == (None, 'id', 7)

    def test_delete(self):
        ir = parse("DELETE FROM users WHERE id = 1")
        assert ir.delete_from.table == 'users'
        assert ir.filters.children[0].column == 'id'
        assert parse("DELETE FROM users").filters is None

    def test_create_table(self):
        ir = parse("CREATE TEMPORARY TABLE IF NOT EXISTS t (id INT, name VARCHAR(20))")
        create = ir.create_table
        assert create.name == 't'
        assert create.temporary is True
        assert create.if_not_exists is True
        assert create.column_definitions == ['id INT', 'name VARCHAR(20)']

    def test_alter_table(self):
        alter = parse("ALTER TABLE t ADD COLUMN x INT").alter_table
        assert (alter.table, alter.action, alter.definition) == ('t', 'ADD', 'COLUMN x INT')

    def test_drop_table(self):
        drop = parse("DROP TABLE IF EXISTS t CASCADE").drop_table
        assert drop.table == 't'
        assert drop.if_exists is True
        assert drop.cascade is True

    def test_truncate(self):
        assert parse("TRUNCATE TABLE logs").truncate_table.table == 'logs'


class TestRobustness:
    """The parser never raises."""

    @pytest.mark.parametrize("sql", [
        "",
        "   ",
        "not sql at all",
        "SELECT",
        "SELECT * FROM",
        "SELECT * FROM t WHERE (a = 1",
        "SELECT * FROM t WHERE name = 'unterminated",
        "WITH x AS (SELECT 1",
        "UPDATE",
    ])
    def test_garbage_does_not_raise(self, sql):
        ir = parse_sql_to_ir(sql)
        assert ir.name == 'Imported SQL Query'

    def test_missing_from_yields_no_tables(self):
        assert parse("SELECT 1").tables == []

    def test_default_ids_unique_across_calls(self):
        first = parse_sql_to_ir("SELECT * FROM users")
        second = parse_sql_to_ir("SELECT * FROM users")
        assert first.tables[0].id != second.tables[0].id


class TestClassifyStatement:
    """Test statement classification by leading keyword."""

    def test_known_kinds(self):
        assert classify_statement("  select 1") == 'SELECT'
        assert classify_statement("delete from t") == 'DELETE'
        assert classify_statement("WITH x AS (SELECT 1) SELECT * FROM x") == 'SELECT'

    def test_unknown(self):
        assert classify_statement("EXPLAIN SELECT 1") is None
        assert classify_statement("") is None
