"""Unit tests for Container."""

from typing import Annotated, Any

import pytest

from asyncscope_di.application.container import Container, get_default_container
from asyncscope_di.application.declarations import bind_action, declare_property, inject, inject_optional, injectable
from asyncscope_di.domain import (
    AliasCycleError,
    CircularDependencyError,
    ContainerConfig,
    IContainerBinder,
    IContainerResolver,
    RegistrationError,
    RequiredDependencyError,
    Token,
    UnresolvableError,
)


class Test1:
    __test__ = False

    def __init__(self, token=0):
        self.token = token


class TestContainerInitialization:
    """Test cases for Container initialization."""

    def test_container_implements_interfaces(self):
        """Test that Container implements the resolver and binder interfaces."""
        container = Container()
        assert isinstance(container, IContainerResolver)
        assert isinstance(container, IContainerBinder)

    def test_root_scope_is_aliased(self):
        """Test that the creating context is named after the root scope."""
        container = Container()

        assert container.config.root_scope == "root"
        assert container.has_scope("root")

    def test_root_scope_can_be_disabled(self):
        """Test that no name is given when root_scope is None."""
        container = Container(ContainerConfig(root_scope=None))

        assert not container.has_scope("root")

    def test_custom_root_scope(self):
        """Test a custom root scope name."""
        container = Container(ContainerConfig(root_scope="app"))

        assert container.has_scope("app")
        assert not container.has_scope("root")

    def test_binders_are_chainable(self):
        """Test that binder methods return the container."""
        container = Container()

        result = container.set("a", 1).bind("b", lambda: 2).bind_alias("c", "a")

        assert result is container
        assert container.get("c") == 1


class TestValueBindings:
    """Test cases for set and bind_value."""

    def test_set_and_get(self):
        """Test that a bound value is returned as is."""
        container = Container()
        value = Test1(1)

        container.set("test", value)

        assert container.get("test") is value

    def test_falsy_values(self):
        """Test that falsy values are bound and returned."""
        container = Container()
        container.bind_value("zero", 0).bind_value("empty", "")

        assert container.get("zero") == 0
        assert container.get("empty") == ""

    def test_token_identifiers(self):
        """Test that tokens with the same name bind independently."""
        container = Container()
        first = Token("db")
        second = Token("db")

        container.set(first, "primary").set(second, "replica")

        assert container.get(first) == "primary"
        assert container.get(second) == "replica"

    def test_unbound_non_class_is_none(self):
        """Test that unbound strings resolve to None."""
        assert Container().get("missing") is None

    def test_rebinding_replaces(self):
        """Test that binding again replaces the registration."""
        container = Container()
        container.set("key", 1)
        container.set("key", 2)

        assert container.get("key") == 2


class TestCreatorBindings:
    """Test cases for bind."""

    def test_transient_creator(self):
        """Test that each get calls the creator again."""
        container = Container()
        container.bind("test1", lambda: Test1(10))

        first = container.get("test1")
        second = container.get("test1")

        assert first.token == 10
        assert second.token == 10
        assert first is not second

    def test_singleton_creator(self):
        """Test that a singleton creator runs once."""
        container = Container()
        calls = []

        def create():
            calls.append(1)
            return Test1(10)

        container.bind("test1", create, singleton=True)

        assert container.get("test1") is container.get("test1")
        assert len(calls) == 1

    def test_creator_failure_is_wrapped(self):
        """Test that creator errors surface as UnresolvableError."""
        container = Container()

        def create():
            raise KeyError("missing")

        container.bind("broken", create)

        with pytest.raises(UnresolvableError):
            container.get("broken")


class TestClassBindings:
    """Test cases for bind_class and bind_class_with_id."""

    def test_bind_class_transient(self):
        """Test that transient classes produce new instances."""
        container = Container()
        container.bind_class(Test1)

        assert container.get(Test1) is not container.get(Test1)

    def test_bind_class_singleton(self):
        """Test that singleton classes produce one instance."""
        container = Container()
        container.bind_class(Test1, singleton=True)

        assert container.get(Test1) is container.get(Test1)

    def test_bind_class_with_id(self):
        """Test binding a class under another identifier."""
        container = Container()
        container.bind_class_with_id("test", Test1, singleton=True)

        instance = container.get("test")

        assert isinstance(instance, Test1)
        assert container.get("test") is instance

    def test_unbound_class_is_constructed(self):
        """Test that an unbound class is created fresh each time."""
        container = Container()

        first = container.get(Test1)
        second = container.get(Test1)

        assert isinstance(first, Test1)
        assert first is not second

    def test_auto_construct_disabled(self):
        """Test that unbound classes resolve to None when auto-construction is off."""
        container = Container(ContainerConfig(auto_construct=False))

        assert container.get(Test1) is None

    def test_auto_construct_disabled_still_auto_binds(self):
        """Test that declared bindings still apply without auto-construction."""
        container = Container(ContainerConfig(auto_construct=False))

        @bind_action(lambda cls, binder: binder.bind_class(cls, singleton=True))
        class Service:
            pass

        assert isinstance(container.get(Service), Service)

    def test_constructor_failure_is_wrapped(self):
        """Test that constructor errors surface as UnresolvableError."""
        container = Container()

        class Broken:
            def __init__(self):
                raise ValueError("boom")

        with pytest.raises(UnresolvableError, match="Broken"):
            container.get(Broken)


class TestAliasBindings:
    """Test cases for bind_alias."""

    def test_alias_of_singleton(self):
        """Test that an alias of a singleton returns the same instance."""
        container = Container()
        container.bind_class(Test1, singleton=True)
        container.bind_alias("test", Test1)

        assert container.get("test") is container.get(Test1)

    def test_alias_chain(self):
        """Test that aliases can point to aliases."""
        container = Container()
        container.set("c", 3).bind_alias("b", "c").bind_alias("a", "b")

        assert container.get("a") == 3

    def test_alias_to_unbound_class_constructs_it(self):
        """Test that an alias to an unbound class falls back to construction."""
        container = Container()
        container.bind_alias("test", Test1)

        assert isinstance(container.get("test"), Test1)

    def test_alias_cycle_raises(self):
        """Test that a looping alias chain is detected."""
        container = Container()
        container.bind_alias("a", "b").bind_alias("b", "a")

        with pytest.raises(AliasCycleError) as exc_info:
            container.get("a")

        assert exc_info.value.chain == ["b", "a", "b"]

    def test_alias_to_itself_raises(self):
        """Test that an alias pointing at itself is detected."""
        container = Container()
        container.bind_alias("a", "a")

        with pytest.raises(AliasCycleError):
            container.get("a")

    def test_resolution_works_after_alias_cycle(self):
        """Test that a detected cycle does not leave state behind."""
        container = Container()
        container.bind_alias("a", "b").bind_alias("b", "a")
        with pytest.raises(AliasCycleError):
            container.get("a")

        container.set("b", 1)

        assert container.get("a") == 1


class TestFactoryBindings:
    """Test cases for bind_factory."""

    def test_factory_instance(self):
        """Test that a factory instance's create is called every time."""
        container = Container()

        class Maker:
            def create(self):
                return Test1(5)

        container.bind_factory("test", Maker())

        first = container.get("test")
        assert first.token == 5
        assert container.get("test") is not first

    def test_factory_class_is_singleton_by_default(self):
        """Test that a factory class is constructed once."""
        container = Container()

        class Maker:
            instances = 0

            def __init__(self):
                Maker.instances += 1
                self.count = 0

            def create(self):
                self.count += 1
                return Test1(self.count)

        container.bind_factory("test", Maker)

        assert container.get("test").token == 1
        assert container.get("test").token == 2
        assert Maker.instances == 1

    def test_factory_class_not_singleton(self):
        """Test that factory_singleton=False builds a factory per product."""
        container = Container()

        class Maker:
            def __init__(self):
                self.count = 0

            def create(self):
                self.count += 1
                return Test1(self.count)

        container.bind_factory("test", Maker, factory_singleton=False)

        assert container.get("test").token == 1
        assert container.get("test").token == 1

    def test_singleton_product(self):
        """Test that singleton=True caches the factory's product."""
        container = Container()

        class Maker:
            def create(self):
                return Test1()

        container.bind_factory("test", Maker, singleton=True)

        assert container.get("test") is container.get("test")

    def test_factory_class_gets_dependencies(self):
        """Test that a factory class is itself injected."""
        container = Container()
        container.set("seed", 42)

        class Maker:
            seed = inject("seed")

            def create(self):
                return Test1(self.seed)

        container.bind_factory("test", Maker)

        assert container.get("test").token == 42

    def test_factory_without_create_raises(self):
        """Test that an object without create() is rejected."""
        container = Container()

        with pytest.raises(RegistrationError):
            container.bind_factory("test", object())


class TestPropertyInjection:
    """Test cases for property injection and fill."""

    def test_property_is_filled_on_construction(self):
        """Test that declared properties are injected after construction."""
        container = Container()
        container.set(Test1, Test1(10))

        class Test2:
            prop1: Test1 = inject()

        assert container.get(Test2).prop1.token == 10

    def test_required_property_missing_raises(self):
        """Test that a required property resolving to None raises."""
        container = Container()

        class Test2:
            prop1 = inject("missing")

        with pytest.raises(RequiredDependencyError, match="property 'prop1'"):
            container.get(Test2)

    def test_optional_property_missing_is_none(self):
        """Test that an optional property is left as None."""
        container = Container()

        class Test2:
            prop1 = inject_optional("missing")

        assert container.get(Test2).prop1 is None

    def test_fill_existing_instance(self):
        """Test that fill injects into an instance made elsewhere."""
        container = Container()
        container.set("name", "filled")

        class Test2:
            name = inject("name")

        instance = Test2()
        container.fill(instance)

        assert instance.name == "filled"

    def test_fill_keeps_set_values(self):
        """Test that fill does not overwrite properties already set."""
        container = Container()
        container.set("name", "filled")

        class Test2:
            name = inject("name")

        instance = Test2()
        instance.name = "kept"
        container.fill(instance)

        assert instance.name == "kept"

    def test_fill_undeclared_instance(self):
        """Test that fill ignores classes without declarations."""
        instance = Test1(3)

        Container().fill(instance)

        assert instance.token == 3

    def test_forced_scope_is_used(self):
        """Test that properties of a scoped class resolve from that scope."""
        container = Container()
        container.alias_scope("app")
        container.set("name", "app")

        class Test2:
            name = inject("name", scope="app")

        with container.fork():
            container.set("name", "inner")
            assert container.get(Test2).name == "app"

    def test_inherited_properties(self):
        """Test that properties declared on a base class are injected."""
        container = Container()
        container.set("name", "base")

        class Base:
            name = inject("name")

        class Child(Base):
            pass

        assert container.get(Child).name == "base"


class TestConstructorInjection:
    """Test cases for constructor injection."""

    def test_constructor_param(self):
        """Test that declared constructor parameters are injected."""
        container = Container()
        container.set(Test1, Test1(10))

        @injectable
        class Test3:
            def __init__(self, param1: Annotated[Test1, inject()]):
                self.prop1 = param1

        assert container.get(Test3).prop1.token == 10

    def test_required_param_missing_raises(self):
        """Test that a required parameter resolving to None raises."""
        container = Container()

        @injectable
        class Test3:
            def __init__(self, param1: Annotated[Any, inject("missing")]):
                self.prop1 = param1

        with pytest.raises(RequiredDependencyError, match=r"constructor param\[0\]"):
            container.get(Test3)

    def test_optional_param_keeps_default(self):
        """Test that an unresolved optional parameter keeps its default."""
        container = Container()

        @injectable
        class Test3:
            def __init__(self, param1: Annotated[Any, inject_optional("missing")] = 7):
                self.prop1 = param1

        assert container.get(Test3).prop1 == 7

    def test_optional_param_without_default_is_none(self):
        """Test that an unresolved optional parameter without default is None."""
        container = Container()

        @injectable
        class Test3:
            def __init__(self, param1: Annotated[Any, inject_optional("missing")]):
                self.prop1 = param1

        assert container.get(Test3).prop1 is None

    def test_construction_cycle_raises(self):
        """Test that classes needing each other are detected."""
        container = Container()

        class A:
            pass

        class B:
            pass

        declare_property(A, "b", inject(B))
        declare_property(B, "a", inject(A))

        with pytest.raises(CircularDependencyError) as exc_info:
            container.get(A)

        assert exc_info.value.chain == [A, B, A]


class TestAutoBind:
    """Test cases for auto_bind."""

    def test_actions_run_once(self):
        """Test that bind actions run only on the first resolution."""
        container = Container()
        calls = []

        @bind_action(lambda cls, binder: calls.append(cls))
        class Service:
            pass

        container.get(Service)
        container.get(Service)
        container.auto_bind(Service)

        assert calls == [Service]
        assert container.is_auto_bound(Service)

    def test_actions_run_per_container(self):
        """Test that each container runs the actions itself."""
        calls = []

        @bind_action(lambda cls, binder: calls.append(binder))
        class Service:
            pass

        first = Container()
        second = Container()
        first.get(Service)
        second.get(Service)

        assert calls == [first, second]

    def test_class_is_auto_bound_while_actions_run(self):
        """Test that re-entrant resolution does not run actions again."""
        container = Container()
        seen = []

        def action(cls, binder):
            seen.append(binder.is_auto_bound(cls))
            seen.append(binder.get(cls))

        @bind_action(action)
        class Service:
            pass

        container.get(Service)

        assert seen[0] is True
        assert isinstance(seen[1], Service)

    def test_failing_action_is_not_retried(self):
        """Test that a class whose action raised is still marked as auto-bound."""
        container = Container()
        calls = []

        def action(cls, binder):
            calls.append(cls)
            raise RuntimeError("bad action")

        @bind_action(action)
        class Service:
            pass

        with pytest.raises(RuntimeError):
            container.get(Service)

        assert isinstance(container.get(Service), Service)
        assert calls == [Service]

    def test_bind_class_does_not_auto_bind(self):
        """Test that an explicit bind_class skips the class's declarations."""
        container = Container()
        calls = []

        @bind_action(lambda cls, binder: calls.append(cls))
        class Service:
            pass

        container.bind_class(Service)
        container.get(Service)

        assert calls == []


class TestScopesAndContexts:
    """Test cases for scopes on the container."""

    def test_named_context_lookup(self):
        """Test that from_scope starts the lookup at the named context."""
        container = Container()
        container.alias_scope("scope1")
        container.set("x", 1)

        with container.fork():
            container.set("x", 2)
            assert container.get("x") == 2
            assert container.get("x", "scope1") == 1

        assert container.get("x") == 1

    def test_unknown_scope_falls_back_to_active_context(self):
        """Test that an unknown from_scope resolves from the active context."""
        container = Container()
        container.set("x", 1)

        assert container.get("x", "nowhere") == 1

    def test_lazy_binding(self):
        """Test that bindings for a future scope wait for the alias."""
        container = Container()
        value = Test1(1)
        container.set("test", value, scope="nt1")

        assert container.get("test") is None
        assert container.scopes.pending("nt1") == ["test"]

        with container.fork():
            container.alias_scope("nt1")
            assert container.get("test") is value

    def test_binding_into_ancestor_scope(self):
        """Test that a scoped binding from a child lands in the named ancestor."""
        container = Container()

        with container.fork():
            container.set("x", 1, scope="root")

        assert container.get("x") == 1

    def test_distance(self):
        """Test distance from the active context."""
        container = Container()
        container.set("x", 1)

        assert container.distance("x") == 0
        assert container.distance("missing") == -1
        with container.fork():
            assert container.distance("x") == 1

    def test_singleton_bound_in_child_stays_in_child(self):
        """Test that a singleton registered in a forked context is dropped with it."""
        container = Container()

        with container.fork():
            container.bind_class(Test1, singleton=True)
            inner = container.get(Test1)
            assert container.get(Test1) is inner

        assert container.get(Test1) is not inner


class TestDefaultContainer:
    """Test cases for get_default_container."""

    def test_default_container_is_shared(self):
        """Test that the same container is returned every time."""
        assert get_default_container() is get_default_container()
        assert isinstance(get_default_container(), Container)
