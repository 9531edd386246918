"""
Tests for built-in functions.
"""

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from interrotron import (
    BUILTIN_FUNCTIONS,
    ArgumentError,
    BuiltinContext,
    BuiltinError,
    Interrotron,
    UndefinedSymbolError,
    Value,
    call_builtin,
    create_function_registry,
    is_builtin_function,
    run,
)

FIXED_NOW = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


def call(name: str, *args: Value) -> Value:
    """Helper to call a built-in directly with evaluated arguments."""
    return BUILTIN_FUNCTIONS[name].invoke(list(args), BuiltinContext(clock=lambda: FIXED_NOW))


def run_at(source: str, now: datetime = FIXED_NOW) -> Value:
    """Helper to run a script against a fixed clock."""
    return Interrotron(clock=lambda: now).run(source)


class TestArithmetic:
    """Tests for arithmetic built-ins."""

    def test_nested_arithmetic(self):
        assert run("(+ (* 2 2) (% 5 4))") == 5

    def test_complex_nested_arithmetic(self):
        assert run("(- 10 (+ 2 (+ 1 1)))") == 6

    def test_add_is_variadic(self):
        assert run("(+ 1 2 3 4)") == 10
        assert run("(+)") == 0

    def test_add_promotes_to_float(self):
        result = run("(+ 1 2.5)")
        assert result == 3.5
        assert isinstance(result, float)

    def test_unary_minus_negates(self):
        assert run("(- 5)") == -5

    def test_subtract_is_left_associative(self):
        assert run("(- 10 2 3)") == 5

    def test_multiply(self):
        assert run("(* 2 3 4)") == 24
        assert run("(*)") == 1

    def test_integer_division_floors(self):
        assert run("(/ 7 2)") == 3
        assert run("(/ -7 2)") == -4

    def test_float_division(self):
        assert run("(/ 7.0 2)") == 3.5

    def test_division_by_zero(self):
        with pytest.raises(BuiltinError, match="division by zero"):
            run("(/ 1 0)")

    def test_modulo_by_zero(self):
        with pytest.raises(BuiltinError, match="modulo by zero"):
            run("(% 5 0)")

    def test_rejects_non_numbers(self):
        with pytest.raises(ArgumentError, match="must be a number, got string"):
            run("(+ 1 'two')")

    def test_booleans_are_not_numbers(self):
        with pytest.raises(ArgumentError, match="got boolean"):
            run("(* 2 true)")

    def test_rounding(self):
        assert run("(floor 2.7)") == 2
        assert run("(ceil 2.1)") == 3
        assert run("(round 2.5)") == 3
        assert run("(round -2.5)") == -3
        assert run("(round 2.4)") == 2

    def test_overflowing_float_arithmetic_is_builtin_error(self):
        huge = "(* " + " ".join(["1000000000000"] * 400) + ")"
        with pytest.raises(BuiltinError, match="out of range"):
            run(f"(+ {huge} 1.0)")
        with pytest.raises(BuiltinError, match="out of range"):
            run(f"(/ {huge} 2.0)")

    def test_rounding_rejects_non_finite_floats(self):
        with pytest.raises(BuiltinError, match="floor"):
            run("(floor (float 'inf'))")
        with pytest.raises(BuiltinError, match="ceil"):
            run("(ceil (float '-inf'))")
        with pytest.raises(BuiltinError, match="round"):
            run("(round (float 'nan'))")

    def test_rounding_keeps_large_integers(self):
        big = 10**30
        assert run(f"(round {big})") == big
        assert run(f"(floor {big})") == big


class TestComparison:
    """Tests for comparison and logic built-ins."""

    def test_compares_mixed_numbers(self):
        assert run("(> 100 99.5)") is True
        assert run("(< 100 99.5)") is False

    def test_comparisons_chain(self):
        assert run("(< 1 2 3)") is True
        assert run("(< 1 3 2)") is False
        assert run("(<= 1 1 2)") is True
        assert run("(>= 3 3 4)") is False

    def test_custom_var_comparison(self):
        assert run("(> 51 custom_var)", {"custom_var": 10}) is True

    def test_compares_times(self):
        assert run("(> #t{2012-12-12} #t{2010-09-04})") is True
        assert run("(< #t{2012-12-12} #t{2010-09-04})") is False

    def test_rejects_number_and_time(self):
        with pytest.raises(ArgumentError, match="cannot compare number and time"):
            run("(> 1 #t{2010-09-04})")

    def test_rejects_number_and_array(self):
        with pytest.raises(ArgumentError, match="cannot compare number and array"):
            run("(> 1 (array 1))")

    def test_equality_is_structural(self):
        assert run("(= 1 1.0)") is True
        assert run("(= 'a' 'a' 'a')") is True
        assert run("(= (array 1 2) (array 1 2))") is True
        assert run("(= (array 1 2) (array 2 1))") is False
        assert run("(= 1 true)") is False
        assert run("(= nil false)") is False

    def test_not_equal(self):
        assert run("(!= 1 2)") is True
        assert run("(!= 'a' 'a')") is False

    def test_not_uses_truthiness(self):
        assert run("(not nil)") is True
        assert run("(not false)") is True
        assert run("(not 0)") is False
        assert run("(not '')") is False

    def test_identity(self):
        assert run("(identity 2)") == 2

    def test_identity_arity(self):
        with pytest.raises(BuiltinError, match="expected 1 argument"):
            run("(identity 1 2)")


class TestConversions:
    """Tests for string and conversion built-ins."""

    def test_str_concatenates(self):
        assert run("(str 'a' 1 true nil 2.5)") == "a1true2.5"

    def test_str_of_arrays_and_times(self):
        assert run("(str (array 1 'b'))") == "[1 b]"
        assert run("(str #t{2012-05-01})") == "2012-05-01T00:00:00+00:00"

    def test_str_of_sums(self):
        assert run("(str (+ 1 2) (+ 3 4) (+ 5 7))") == "3712"

    def test_converts_ints(self):
        result = run("(int '2')")
        assert result == 2
        assert isinstance(result, int)

    def test_int_truncates_decimal_text(self):
        assert run("(int '2.7')") == 2

    def test_int_of_number(self):
        assert run("(int 2.7)") == 2

    def test_int_rejects_non_finite_floats(self):
        with pytest.raises(BuiltinError, match="cannot convert inf"):
            run("(int (float 'inf'))")
        with pytest.raises(BuiltinError, match="cannot convert nan"):
            run("(int (float 'nan'))")

    def test_int_error_chains_cause(self):
        with pytest.raises(BuiltinError) as exc_info:
            run("(int 'abc')")
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_int_rejects_garbage(self):
        with pytest.raises(BuiltinError, match="cannot convert"):
            run("(int 'abc')")

    def test_converts_floats(self):
        result = run("(float '2.5')")
        assert result == 2.5
        assert isinstance(result, float)

    def test_float_rejects_garbage(self):
        with pytest.raises(BuiltinError, match="cannot convert"):
            run("(float 'two')")

    def test_parses_dates(self):
        assert run("(time '2012-05-01')") == datetime(2012, 5, 1, tzinfo=timezone.utc)

    def test_parses_date_times(self):
        assert run("(time '2012-05-01T10:15:00Z')") == datetime(
            2012, 5, 1, 10, 15, tzinfo=timezone.utc
        )

    def test_time_matches_literal(self):
        assert run("(= (time '2012-05-01') #t{2012-05-01})") is True

    def test_time_rejects_garbage(self):
        with pytest.raises(BuiltinError, match="cannot parse"):
            run("(time 'yesterday')")

    def test_str_of_huge_integer_is_argument_error(self):
        huge = "(* " + " ".join(["1000000000000"] * 400) + ")"
        with pytest.raises(ArgumentError, match="too large to render"):
            run(f"(str {huge})")


class TestTime:
    """Tests for time built-ins."""

    def test_durations_are_seconds(self):
        assert run("(+ (days 1) (minutes 1) (hours 1) (seconds 1))") == 90061

    def test_months_are_thirty_days(self):
        assert run("(months 1)") == 30 * 86400

    def test_now_reads_clock(self):
        assert run_at("(now)") == FIXED_NOW

    def test_from_now(self):
        assert run_at("(from-now (minutes 1))") == FIXED_NOW + timedelta(seconds=60)

    def test_ago(self):
        assert run_at("(ago (hours 12))") == FIXED_NOW - timedelta(hours=12)

    def test_compares_with_real_clock(self):
        assert run("(> (now) (ago (hours 12)))") is True

    def test_clock_is_read_on_every_call(self):
        ticks = count()
        tron = Interrotron(clock=lambda: FIXED_NOW + timedelta(seconds=next(ticks)))
        first, second = tron.run("(array (now) (now))")
        assert second - first == timedelta(seconds=1)

    def test_time_arithmetic(self):
        assert run("(- #t{2012-01-02} #t{2012-01-01})") == 86400.0
        assert run("(+ #t{2012-01-01} (days 1))") == datetime(
            2012, 1, 2, tzinfo=timezone.utc
        )
        assert run("(- #t{2012-01-02} (hours 24))") == datetime(
            2012, 1, 1, tzinfo=timezone.utc
        )

    def test_from_now_past_calendar_end_is_builtin_error(self):
        with pytest.raises(BuiltinError, match="from-now") as exc_info:
            run_at("(from-now (days 100000000))")
        assert isinstance(exc_info.value.__cause__, OverflowError)

    def test_ago_with_huge_duration_is_builtin_error(self):
        with pytest.raises(BuiltinError, match="ago"):
            run_at("(ago 1e20)")

    def test_time_shift_out_of_range_is_builtin_error(self):
        with pytest.raises(BuiltinError, match="out of range"):
            run("(+ (now) 1e20)")
        with pytest.raises(BuiltinError, match="out of range"):
            run("(- (now) 1e20)")

    def test_time_shift_by_nan_is_builtin_error(self):
        with pytest.raises(BuiltinError, match="out of range"):
            run_at("(from-now (float 'nan'))")

    def test_now_takes_no_arguments(self):
        with pytest.raises(BuiltinError, match="expected 0 argument"):
            call("now", 1)


class TestArrays:
    """Tests for array built-ins."""

    def test_builds_arrays(self):
        assert run("(array 1 2 3)") == [1, 2, 3]
        assert run("(array)") == []

    def test_max(self):
        result = run("(max (array 82 10 100 99.5))")
        assert result == 100
        assert isinstance(result, int)

    def test_min(self):
        assert run("(min (array 82 10 100 99.5))") == 10

    def test_max_of_times(self):
        assert run("(max (array #t{2010-01-01} #t{2012-01-01}))") == datetime(
            2012, 1, 1, tzinfo=timezone.utc
        )

    def test_max_rejects_empty_array(self):
        with pytest.raises(BuiltinError, match="must not be empty"):
            run("(max (array))")

    def test_max_rejects_mixed_elements(self):
        with pytest.raises(BuiltinError, match="all numbers or all times"):
            run("(max (array 1 'a'))")

    def test_first_and_last(self):
        assert run("(first (array 1 2 3))") == 1
        assert run("(last (array 1 2 3))") == 3

    def test_first_of_empty_array(self):
        with pytest.raises(ArgumentError, match="must not be empty"):
            run("(first (array))")

    def test_last_requires_array(self):
        with pytest.raises(ArgumentError, match="must be an array, got number"):
            run("(last 3)")

    def test_nth(self):
        assert run("(nth 1 (array 'a' 'b' 'c'))") == "b"
        with pytest.raises(BuiltinError, match="out of range"):
            run("(nth 3 (array 'a' 'b' 'c'))")

    def test_length(self):
        assert run("(length (array 1 2 3 'bob'))") == 4
        assert run("(length 'bob')") == 3

    def test_membership(self):
        assert run("(member? 5 (array 10 20 30))") is False
        assert run("(member? 5 (array 10 5 30))") is True
        assert run("(member? 1.0 (array 1))") is True
        assert run("(member? (array 1) (array (array 1)))") is True

    def test_builtins_do_not_mutate_arguments(self):
        items = [3, 1, 2]
        assert run("(first items)", {"items": items}) == 3
        assert run("(max items)", {"items": items}) == 3
        assert items == [3, 1, 2]


class TestApply:
    """Tests for apply."""

    def test_spreads_array_into_function(self):
        assert run("(apply + (array 1 2 3))") == 6

    def test_applies_host_function(self):
        assert run("(apply f (array 2 3))", {"f": lambda a, b: a**b}) == 8

    def test_requires_function(self):
        with pytest.raises(BuiltinError, match="fn must be a function"):
            run("(apply 1 (array))")

    def test_requires_array(self):
        with pytest.raises(BuiltinError, match="arr must be an array"):
            run("(apply + 1)")


class TestRegistry:
    """Tests for the function registry."""

    def test_call_builtin(self):
        assert call_builtin("length", [[1, 2]], BuiltinContext()) == 2

    def test_call_unknown_builtin(self):
        with pytest.raises(UndefinedSymbolError, match="Undefined symbol: nope"):
            call_builtin("nope", [], BuiltinContext())

    def test_is_builtin_function(self):
        assert is_builtin_function("member?")
        assert not is_builtin_function("and")

    def test_registry_is_read_only(self):
        with pytest.raises(TypeError):
            BUILTIN_FUNCTIONS["evil"] = BUILTIN_FUNCTIONS["+"]  # type: ignore[index]

    def test_registry_with_host_functions(self):
        registry = create_function_registry({"double": lambda x: x * 2})
        assert Interrotron(functions=registry).run("(double 4)") == 8
        assert "double" not in BUILTIN_FUNCTIONS

    def test_registry_with_builtin_convention(self):
        def _count_args(args, ctx):
            return len(args)

        registry = create_function_registry(
            {"count-args": _count_args}, builtin_convention=True
        )
        assert Interrotron(functions=registry).run("(count-args 1 2 3)") == 3
