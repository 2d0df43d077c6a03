"""Tests for the pytest ordering plugin."""

import pytest

from loadflow.errors import LoadConfigurationError
from loadflow.pytest_plugin import item_tag, order_items
from loadflow.scenarios import load

CONFTEST = "from loadflow.pytest_plugin import pytest_configure, pytest_collection_modifyitems\n"


class FakeItem:
    """Just enough of a pytest item for the ordering hooks."""

    def __init__(self, name, function=None, markers=(), parent=None):
        self.name = name
        self.parent = parent
        self.nodeid = f"test_fake.py::{name}"
        self.function = function
        self.own_markers = list(markers)

    def __repr__(self):
        return self.name


class TestItemTag:
    """Tests for reading the tag of a collected item."""

    def test_decorated_function(self, registry):
        @load(order=4, registry=registry)
        def test_tagged():
            pass

        assert item_tag(FakeItem("tagged", test_tagged), registry).order == 4

    def test_marker_keyword(self, registry):
        item = FakeItem("marked", markers=[pytest.mark.load(order=2).mark])
        assert item_tag(item, registry).order == 2

    def test_marker_positional(self, registry):
        item = FakeItem("marked", markers=[pytest.mark.load(3).mark])
        assert item_tag(item, registry).order == 3

    def test_untagged(self, registry):
        assert item_tag(FakeItem("plain", lambda: None), registry) is None
        assert item_tag(FakeItem("doctest"), registry) is None

    def test_decorator_and_marker_conflict(self, registry):
        @load(order=1, registry=registry)
        def test_twice():
            pass

        item = FakeItem("twice", test_twice, markers=[pytest.mark.load(order=2).mark])
        with pytest.raises(LoadConfigurationError, match="more than one load tag"):
            item_tag(item, registry)

    def test_two_markers_conflict(self, registry):
        markers = [pytest.mark.load(order=1).mark, pytest.mark.load(order=2).mark]
        with pytest.raises(LoadConfigurationError):
            item_tag(FakeItem("twice", markers=markers), registry)

    def test_invalid_marker_order(self, registry):
        item = FakeItem("bad", markers=[pytest.mark.load(order="first").mark])
        with pytest.raises(LoadConfigurationError):
            item_tag(item, registry)


class TestOrderItems:
    """Tests for ordering collected items."""

    def test_sorted_by_order(self, registry):
        @load(order=2, registry=registry)
        def test_late():
            pass

        late = FakeItem("late", test_late)
        early = FakeItem("early", markers=[pytest.mark.load(order=1).mark])
        plain = FakeItem("plain")
        negative = FakeItem("negative", markers=[pytest.mark.load(order=-1).mark])

        assert order_items([late, early, plain, negative], registry) == [negative, plain, early, late]

    def test_sorted_within_parent_only(self, registry):
        """Test that tagged tests never move into another module's run."""
        first_a = FakeItem("first_a", parent="a")
        late_a = FakeItem("late_a", markers=[pytest.mark.load(order=5).mark], parent="a")
        early_a = FakeItem("early_a", markers=[pytest.mark.load(order=-1).mark], parent="a")
        only_b = FakeItem("only_b", parent="b")

        assert order_items([first_a, late_a, early_a, only_b], registry) == [
            early_a,
            first_a,
            late_a,
            only_b,
        ]

    def test_untagged_order_preserved_across_parents(self, registry):
        items = [
            FakeItem("a1", parent="module"),
            FakeItem("c1", parent="class"),
            FakeItem("a2", parent="module"),
        ]
        assert order_items(items, registry) == items

    def test_ties_keep_collection_order(self, registry):
        items = [FakeItem(name) for name in "abcd"]
        assert order_items(items, registry) == items


class TestPluginIntegration:
    """Run pytest on generated test files."""

    def test_orders_collected_tests(self, pytester):
        pytester.makeconftest(CONFTEST)
        pytester.makepyfile("""
            import pytest
            from loadflow.scenarios import load

            @load(order=3)
            def test_third():
                pass

            @pytest.mark.load(order=1)
            def test_first():
                pass

            def test_untagged():
                pass

            @load(order=2)
            def test_second():
                pass
        """)

        result = pytester.runpytest("-v")

        result.assert_outcomes(passed=4)
        result.stdout.fnmatch_lines([
            "*::test_untagged PASSED*",
            "*::test_first PASSED*",
            "*::test_second PASSED*",
            "*::test_third PASSED*",
        ])

    def test_orders_methods_within_class(self, pytester):
        pytester.makeconftest(CONFTEST)
        pytester.makepyfile("""
            from loadflow.scenarios import load

            class TestFlow:
                @load(order=2)
                def test_checkout(self):
                    pass

                @load(order=1)
                def test_login(self):
                    pass
        """)

        result = pytester.runpytest("-v")

        result.assert_outcomes(passed=2)
        result.stdout.fnmatch_lines([
            "*::TestFlow::test_login PASSED*",
            "*::TestFlow::test_checkout PASSED*",
        ])

    def test_module_fixture_set_up_once(self, pytester):
        pytester.makeconftest(CONFTEST)
        pytester.makepyfile(
            test_first_module="""
                import pytest

                @pytest.fixture(scope="module")
                def resource():
                    print("SETUP_RESOURCE")
                    yield

                def test_a1(resource):
                    pass

                @pytest.mark.load(order=5)
                def test_a2(resource):
                    pass

                @pytest.mark.load(order=-1)
                def test_a0(resource):
                    pass
            """,
            test_second_module="""
                def test_b1():
                    pass
            """,
        )

        result = pytester.runpytest("-v", "-s")

        result.assert_outcomes(passed=4)
        result.stdout.fnmatch_lines([
            "*::test_a0*PASSED*",
            "*::test_a1*PASSED*",
            "*::test_a2*PASSED*",
            "*test_second_module.py::test_b1*PASSED*",
        ])
        assert result.stdout.str().count("SETUP_RESOURCE") == 1

    def test_conflicting_tags_are_a_usage_error(self, pytester):
        pytester.makeconftest(CONFTEST)
        pytester.makepyfile("""
            import pytest
            from loadflow.scenarios import load

            @pytest.mark.load(order=1)
            @load(order=2)
            def test_twice():
                pass
        """)

        result = pytester.runpytest()

        assert result.ret == pytest.ExitCode.USAGE_ERROR
        result.stderr.fnmatch_lines(["*more than one load tag*"])
