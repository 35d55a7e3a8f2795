# =============================================================================
# test_session.py - Parse Session Tests
# =============================================================================
# Tests for the top-level driving loop: unit dispatch, semicolon skipping,
# error recovery with operator table rollback, consumer rejection,
# redefinition checks, error limits and the convenience functions.
# =============================================================================

import io

import pytest
from kscope.frontend.ast import (
    BinaryExpression,
    FunctionNode,
    NumberLiteral,
    Prototype,
    UnaryExpression,
)
from kscope.frontend.errors import (
    ErrorCollector,
    FrontendCompilationError,
    MissingTokenError,
    RedefinitionError,
    UnitRejectedError,
    UnknownOperatorError,
)
from kscope.frontend.operators import OperatorTable, NOT_AN_OPERATOR
from kscope.frontend.session import (
    ParseSession,
    SessionOptions,
    UnitConsumer,
    UnitCollector,
    parse_source,
)


def bodies(units):
    return [unit.body for unit in units if isinstance(unit, FunctionNode)]


# =============================================================================
# Basic Session Tests
# =============================================================================

class TestSessionBasics:
    """Test unit dispatch and ordering."""

    def test_units_in_order(self, run_session):
        result, collector, diagnostics = run_session("def f(x) x * 2; extern g(y); f(4)")
        assert result.success
        assert diagnostics == []
        assert [type(unit) for unit in result.units] == [FunctionNode, Prototype, FunctionNode]
        assert result.units[0].name == "f"
        assert result.units[1].name == "g"
        assert result.units[2].is_anonymous

    def test_collector_views(self, run_session):
        _, collector, _ = run_session("extern sin(x); def f(x) sin(x); 1")
        assert [proto.name for proto in collector.externs] == ["sin"]
        assert [function.name for function in collector.functions] == ["f", "__anon_expr"]

    def test_empty_source(self, run_session):
        result, _, _ = run_session("")
        assert result.success
        assert result.unit_count == 0

    def test_only_semicolons_and_comments(self, run_session):
        result, _, _ = run_session(";;; # nothing\n ;")
        assert result.success
        assert result.units == []

    def test_units_without_semicolons(self, run_session):
        """Semicolons are optional between units."""
        result, _, _ = run_session("def f(x) x extern g() 3")
        assert [unit.name for unit in result.units] == ["f", "g", "__anon_expr"]

    def test_comments_do_not_change_units(self, run_session):
        plain, _, _ = run_session("def f(x) x + 1; f(2)")
        commented, _, _ = run_session(
            "# increment\ndef f(x) # one parameter\n  x + 1; # done\nf(2) # call"
        )
        assert commented.units == plain.units

    def test_comment_line_before_expression(self, run_session):
        commented, _, _ = run_session("# ignore this\n1+1")
        plain, _, _ = run_session("1+1")
        assert commented.units == plain.units
        assert commented.success

    def test_stream_source(self):
        session = ParseSession(io.StringIO("1 + 2"), SessionOptions(filename="s.ks"))
        result = session.run()
        assert result.filename == "s.ks"
        assert result.unit_count == 1

    def test_units_generator_yields_after_accept(self):
        """Each unit is accepted before the next one is read."""
        seen = []

        class Recorder(UnitConsumer):
            def accept(self, unit):
                seen.append(session.parser.current.describe())

        session = ParseSession("1; 2; 3", consumer=Recorder())
        units = session.units()
        next(units)
        assert seen == [";"]
        next(units)
        assert seen == [";", ";"]


# =============================================================================
# Operator Declaration Across Units
# =============================================================================

class TestOperatorsAcrossUnits:
    """Test that operator declarations affect later units."""

    def test_declared_operator_used_later(self, run_session):
        result, _, _ = run_session("def binary@ 5 (a b) a - b; 1 @ 2 @ 3")
        assert result.units[1].body == BinaryExpression(
            "@",
            BinaryExpression("@", NumberLiteral(1.0), NumberLiteral(2.0)),
            NumberLiteral(3.0),
        )

    def test_use_before_declaration_rejected(self, run_session):
        """'1 @ 2' before any declaration is '1' then an unknown unary '@2'."""
        result, _, diagnostics = run_session("1 @ 2")
        assert diagnostics == [
            "<test>:1:3: error: unknown unary operator '@'; "
            "hint: declare it first with 'def unary@(v) ...'"
        ]
        assert isinstance(result.errors[0], UnknownOperatorError)
        assert bodies(result.units) == [NumberLiteral(1.0)]

    def test_preset_operators(self, run_session):
        result, _, _ = run_session("1 @ 2", operators={"@": 5})
        assert bodies(result.units) == [
            BinaryExpression("@", NumberLiteral(1.0), NumberLiteral(2.0))
        ]

    def test_shared_operator_table(self):
        table = OperatorTable()
        ParseSession("extern binary% 7 (a b)", operators=table).run()
        assert table.precedence("%") == 7

        result = ParseSession("1 % 2", operators=table).run()
        assert isinstance(result.units[0].body, BinaryExpression)

    def test_sessions_do_not_share_tables_by_default(self):
        first = ParseSession("extern binary% 7 (a b)")
        first.run()
        second = ParseSession("")
        assert second.operators.precedence("%") == NOT_AN_OPERATOR


# =============================================================================
# Error Recovery Tests
# =============================================================================

class TestRecovery:
    """Test reporting and recovery from failed units."""

    def test_missing_paren_then_next_unit(self, run_session):
        result, _, diagnostics = run_session("(1+2;\n4+5")
        assert diagnostics == ["<test>:1:5: error: expected ')'"]
        assert isinstance(result.errors[0], MissingTokenError)
        assert not result.success
        assert bodies(result.units) == [
            BinaryExpression("+", NumberLiteral(4.0), NumberLiteral(5.0))
        ]

    def test_each_failure_reported_once(self, run_session):
        result, _, diagnostics = run_session("(1+")
        assert len(diagnostics) == 1
        assert len(result.errors) == 1

    def test_error_at_end_of_input(self, run_session):
        result, _, diagnostics = run_session("def f(x)")
        assert len(diagnostics) == 1
        assert "end of input" in diagnostics[0]
        assert result.units == []

    def test_earlier_units_kept(self, run_session):
        result, _, _ = run_session("def f(x) x; def g(x) (x")
        assert [unit.name for unit in result.units] == ["f"]
        assert len(result.errors) == 1

    def test_failed_unit_rolls_back_operator(self):
        """A definition that fails after its prototype does not keep '@'."""
        session_source = "def binary@ 5 (a b) a +; 1 @ 2"
        diagnostics = []
        session = ParseSession(
            session_source,
            SessionOptions(filename="<test>"),
            on_error=lambda error: diagnostics.append(str(error)),
        )
        result = session.run()

        assert len(diagnostics) == 2
        assert "unknown unary operator '@'" in diagnostics[1]
        assert session.operators.precedence("@") == NOT_AN_OPERATOR
        assert bodies(result.units) == [NumberLiteral(1.0)]

    def test_arity_error_reported(self, run_session):
        result, _, diagnostics = run_session("def binary@ 5 (a) a; 1")
        assert "invalid number of operands" in diagnostics[0]
        assert result.units[-1].is_anonymous

    def test_raise_if_errors(self):
        session = ParseSession("(1")
        session.run()
        with pytest.raises(FrontendCompilationError, match="1 error"):
            session.raise_if_errors()


# =============================================================================
# Consumer Rejection Tests
# =============================================================================

class RejectOperators(UnitConsumer):
    """Refuses every operator definition."""

    def __init__(self):
        self.accepted = []

    def accept(self, unit):
        if isinstance(unit, FunctionNode) and unit.prototype.is_operator:
            raise UnitRejectedError("operators are not supported", location=unit.location)
        self.accepted.append(unit)


class TestConsumerRejection:
    """Test units refused by the consumer."""

    def test_rejection_reported_not_yielded(self):
        diagnostics = []
        consumer = RejectOperators()
        session = ParseSession(
            "def binary@ 5 (a b) a; 1",
            SessionOptions(filename="<test>"),
            consumer=consumer,
            on_error=lambda error: diagnostics.append(str(error)),
        )
        result = session.run()

        assert diagnostics == ["<test>:1:1: error: operators are not supported"]
        assert [unit.name for unit in result.units] == ["__anon_expr"]
        assert consumer.accepted == result.units

    def test_rejection_keeps_operator_table(self):
        """Rejection happens after parsing and leaves the table alone."""
        session = ParseSession("def binary@ 5 (a b) a; 1 @ 2", consumer=RejectOperators())
        result = session.run()

        assert session.operators.precedence("@") == 5
        assert bodies(result.units) == [
            BinaryExpression("@", NumberLiteral(1.0), NumberLiteral(2.0))
        ]

    def test_redefinition_rejected(self, run_session):
        result, _, diagnostics = run_session("def f(x) x;\ndef f(y) y")
        assert isinstance(result.errors[0], RedefinitionError)
        assert diagnostics == [
            "<test>:2:1: error: function 'f' cannot be redefined; "
            "hint: 'f' was first defined at <test>:1:1"
        ]
        assert len(result.units) == 1

    def test_redefinition_allowed(self, run_session):
        result, _, diagnostics = run_session(
            "def f(x) x; def f(y) y", allow_redefinition=True
        )
        assert diagnostics == []
        assert len(result.units) == 2

    def test_anonymous_expressions_repeat(self, run_session):
        result, _, _ = run_session("1; 2; 3")
        assert result.success
        assert result.unit_count == 3

    def test_extern_after_definition_accepted(self, run_session):
        result, _, _ = run_session("def f(x) x; extern f(x)")
        assert result.success


# =============================================================================
# Declare Before Use Tests
# =============================================================================

class TestDeclareBeforeUse:
    """Test that operator functions must be declared before they are used."""

    def test_late_declaration_does_not_rescue_earlier_use(self, run_session):
        result, _, diagnostics = run_session("1 @ 2; def binary@ 5 (a b) a; 1 @ 2")
        assert len(diagnostics) == 1
        assert "unknown unary operator '@'" in diagnostics[0]
        assert bodies(result.units)[-1] == BinaryExpression(
            "@", NumberLiteral(1.0), NumberLiteral(2.0)
        )

    def test_unary_use_before_definition(self, run_session):
        result, _, diagnostics = run_session("!1; def unary!(v) v; !1")
        assert len(diagnostics) == 1
        error = result.errors[0]
        assert isinstance(error, UnknownOperatorError)
        assert (error.symbol, error.role) == ("!", "unary")
        assert bodies(result.units)[-1] == UnaryExpression("!", NumberLiteral(1.0))

    def test_undeclared_binary_inside_definition(self):
        """A shared table can know '%' while the collector has never seen it."""
        table = OperatorTable({"%": 7})
        diagnostics = []
        session = ParseSession(
            "def f(a b) a % b",
            SessionOptions(filename="<test>"),
            consumer=UnitCollector(),
            on_error=lambda error: diagnostics.append(str(error)),
            operators=table,
        )
        result = session.run()

        assert result.units == []
        assert diagnostics == [
            "<test>:1:14: error: unknown binary operator '%'; "
            "hint: declare it first with 'def binary% PRECEDENCE (a b) ...'"
        ]

    def test_extern_declares_operator(self, run_session):
        result, _, diagnostics = run_session("extern binary% 7 (a b); extern unary~(v); ~1 % 2")
        assert diagnostics == []
        assert result.unit_count == 3

    def test_definition_uses_own_operator(self, run_session):
        result, _, diagnostics = run_session(
            "def unary!(v) if v then 0 else !!v; def binary^ 90 (a b) a ^ b"
        )
        assert diagnostics == []
        assert result.unit_count == 2

    def test_builtin_operators_need_no_declaration(self, run_session):
        result, _, _ = run_session("1 < 2 + 3 * 4 - 5")
        assert result.success

    def test_unary_minus_needs_declaration(self, run_session):
        result, _, diagnostics = run_session("-1; def unary-(v) 0 - v; -1")
        assert len(diagnostics) == 1
        assert result.unit_count == 2

    def test_rejected_definition_declares_nothing(self, run_session):
        """A definition refused for an unknown operator does not declare its own."""
        result, _, diagnostics = run_session("def binary@ 5 (a b) !a; 1 @ 2")
        assert len(diagnostics) == 2
        assert all(isinstance(error, UnknownOperatorError) for error in result.errors)
        assert "unknown binary operator '@'" in diagnostics[1]

    def test_preset_counts_as_declared(self, run_session):
        result, _, diagnostics = run_session("def f(a b) a @ b", operators={"@": 5})
        assert diagnostics == []
        assert result.unit_count == 1

    def test_rejection_is_a_unit_rejection(self):
        assert issubclass(UnknownOperatorError, UnitRejectedError)

    def test_first_unknown_operator_in_source_order(self):
        table = OperatorTable({"@": 5, "$": 5})
        session = ParseSession("a @ b $ c", consumer=UnitCollector(), operators=table)
        result = session.run()
        assert result.errors[0].symbol == "@"
        assert result.errors[0].location.column == 3

    def test_long_flat_chain_checked(self, run_session):
        result, _, _ = run_session("1" + " + 1" * 3000)
        assert result.success


# =============================================================================
# Error Limit Tests
# =============================================================================

class TestMaxErrors:
    """Test stopping after max_errors."""

    def test_stops_at_limit(self, run_session):
        result, _, diagnostics = run_session("); ); ); 1", max_errors=2)
        assert len(diagnostics) == 2
        assert result.units == []

    def test_no_limit_by_default(self, run_session):
        result, _, diagnostics = run_session("); ); ); 1")
        assert len(diagnostics) == 3
        assert result.unit_count == 1


# =============================================================================
# Error Collector Tests
# =============================================================================

class TestErrorCollector:
    """Test the collector behind session error reporting."""

    def test_limit_and_report(self):
        collector = ErrorCollector(max_errors=2)
        collector.add(MissingTokenError("')'"))
        assert not collector.should_stop()
        collector.add(MissingTokenError("'else'"))
        assert collector.should_stop()
        assert collector.error_count() == 2
        assert collector.report().endswith("2 errors")

    def test_raise_if_errors_only_with_errors(self):
        collector = ErrorCollector()
        collector.raise_if_errors()
        collector.add(MissingTokenError("')'"))
        with pytest.raises(FrontendCompilationError, match="1 error"):
            collector.raise_if_errors()


# =============================================================================
# Convenience Function Tests
# =============================================================================

class TestParseSource:
    """Test parse_source()."""

    def test_returns_units(self):
        units = parse_source("def f(x) x; f(1)")
        assert [unit.name for unit in units] == ["f", "__anon_expr"]

    def test_raises_on_errors(self):
        with pytest.raises(FrontendCompilationError) as exc_info:
            parse_source("(1; )", filename="bad.ks")
        report = str(exc_info.value)
        assert "bad.ks:1:3: error: expected ')'" in report
        assert report.endswith("2 errors")

    def test_uses_given_table(self):
        table = OperatorTable()
        parse_source("def binary@ 9 (a b) a", operators=table)
        assert table.precedence("@") == 9

    def test_default_consumer_is_collector(self):
        session = ParseSession("1")
        assert isinstance(session.consumer, UnitCollector)
