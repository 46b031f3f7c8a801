"""Unit tests for the mapping model and inheritance completion."""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from jremap.java.symbols import MethodInfo
from jremap.mappings.inheritance import InheritanceProvider, StaticInheritanceProvider
from jremap.mappings.model import FieldSignature, MappingSet, MethodSignature


class CountingProvider:
    """Inheritance provider that records supertype queries."""

    def __init__(
        self,
        supertypes: dict[str, list[str]],
        methods: dict[tuple[str, str, str], MethodInfo] | None = None,
    ) -> None:
        self._supertypes = supertypes
        self._methods = methods or {}
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def get_supertypes(self, binary_name: str) -> list[str]:
        with self._lock:
            self.calls.append(binary_name)
        return list(self._supertypes.get(binary_name, []))

    def get_method(self, binary_name: str, name: str, descriptor: str) -> MethodInfo | None:
        return self._methods.get((binary_name, name, descriptor))


class TestClassMapping:
    """Tests for ClassMapping names and members."""

    def test_names(self) -> None:
        """Test full, simple and package names of a nested class."""
        mapping = MappingSet().create_class_mapping("a/b$c", "com/x/Outer$Inner")

        assert mapping.full_obfuscated_name == "a.b$c"
        assert mapping.full_deobfuscated_name == "com.x.Outer$Inner"
        assert mapping.simple_obfuscated_name == "c"
        assert mapping.simple_deobfuscated_name == "Inner"
        assert mapping.package == "a"
        assert mapping.deobfuscated_package == "com.x"

    def test_identity_by_default(self) -> None:
        """Test unmapped names map to themselves."""
        mapping = MappingSet().get_or_create_class_mapping("a.b")
        method = mapping.create_method_mapping("c", "()V")
        field = mapping.create_field_mapping("d", "I")

        assert mapping.deobfuscated_name == "a.b"
        assert method.deobfuscated_name == "c"
        assert field.deobfuscated_name == "d"

    def test_method_lookup_requires_descriptor(self) -> None:
        """Test overloads are told apart by descriptor."""
        mapping = MappingSet().create_class_mapping("a.b")
        mapping.create_method_mapping("c", "(I)V", "withInt")
        mapping.create_method_mapping("c", "(J)V", "withLong")

        assert mapping.get_method_mapping(MethodSignature("c", "(I)V")).deobfuscated_name == "withInt"
        assert mapping.get_method_mapping(MethodSignature("c", "(J)V")).deobfuscated_name == "withLong"
        assert mapping.get_method_mapping(MethodSignature("c", "()V")) is None

    def test_invalid_method_descriptor(self) -> None:
        """Test creating a method mapping validates its descriptor."""
        mapping = MappingSet().create_class_mapping("a.b")
        with pytest.raises(ValueError):
            mapping.create_method_mapping("c", "not-a-descriptor")


class TestFieldLookup:
    """Tests for ClassMapping.compute_field_mapping."""

    def test_exact_match(self) -> None:
        """Test a field is found by name and descriptor."""
        mapping = MappingSet().create_class_mapping("a.b")
        mapping.create_field_mapping("c", "I", "count")

        found = mapping.compute_field_mapping(FieldSignature("c", "I"))
        assert found is not None
        assert found.deobfuscated_name == "count"

    def test_falls_back_to_untyped_entry(self) -> None:
        """Test an entry without descriptor matches any type."""
        mapping = MappingSet().create_class_mapping("a.b")
        mapping.create_field_mapping("c", None, "count")

        found = mapping.compute_field_mapping(FieldSignature("c", "J"))
        assert found is not None
        assert found.deobfuscated_name == "count"

    def test_typed_entry_does_not_match_other_type(self) -> None:
        """Test a typed entry is not used for a lookup of a different type."""
        mapping = MappingSet().create_class_mapping("a.b")
        mapping.create_field_mapping("c", "I", "count")

        assert mapping.compute_field_mapping(FieldSignature("c", "J")) is None

    def test_untyped_lookup_matches_by_name(self) -> None:
        """Test a lookup without descriptor matches any entry of that name."""
        mapping = MappingSet().create_class_mapping("a.b")
        mapping.create_field_mapping("c", "I", "count")

        found = mapping.compute_field_mapping(FieldSignature("c"))
        assert found is not None
        assert found.deobfuscated_name == "count"
        assert mapping.compute_field_mapping(FieldSignature("d")) is None


class TestParameterMapping:
    """Tests for parameter mappings keyed by slot."""

    def test_lookup_by_slot(self) -> None:
        """Test parameters are found by slot index."""
        method = MappingSet().create_class_mapping("a.b").create_method_mapping("c", "(JI)V")
        method.create_parameter_mapping(0, "start")
        method.create_parameter_mapping(2, "count")

        assert method.get_parameter_mapping(0).deobfuscated_name == "start"
        assert method.get_parameter_mapping(1) is None
        assert method.get_parameter_mapping(2).deobfuscated_name == "count"
        assert [p.index for p in method.parameter_mappings] == [0, 2]

    def test_out_of_range_slot(self) -> None:
        """Test slots beyond the descriptor's parameters yield no mapping."""
        method = MappingSet().create_class_mapping("a.b").create_method_mapping("c", "(I)V")
        method.create_parameter_mapping(5, "ghost")

        assert method.max_slot == 1
        assert method.get_parameter_mapping(5) is None
        assert method.get_parameter_mapping(-1) is None

    def test_negative_slot_rejected(self) -> None:
        """Test negative slots cannot be mapped."""
        method = MappingSet().create_class_mapping("a.b").create_method_mapping("c", "(I)V")
        with pytest.raises(ValueError):
            method.create_parameter_mapping(-1, "x")


class TestMappingSet:
    """Tests for MappingSet lookup and creation."""

    def test_get_does_not_create(self) -> None:
        """Test get_class_mapping never creates a mapping."""
        mappings = MappingSet()
        assert mappings.get_class_mapping("a.b") is None
        assert "a.b" not in mappings
        assert len(mappings) == 0

    def test_get_or_create_is_stable(self) -> None:
        """Test repeated get_or_create returns the same mapping."""
        mappings = MappingSet()
        first = mappings.get_or_create_class_mapping("a.b")
        second = mappings.get_or_create_class_mapping("a/b")

        assert first is second
        assert mappings.class_count == 1
        assert "a/b" in mappings

    def test_concurrent_get_or_create(self) -> None:
        """Test concurrent creation yields a single mapping."""
        mappings = MappingSet()
        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(
                lambda _: mappings.get_or_create_class_mapping("a.b"), range(64)
            ))

        assert all(r is results[0] for r in results)
        assert mappings.class_count == 1


class TestCompletion:
    """Tests for ClassMapping.complete."""

    def test_inherits_parent_method(self) -> None:
        """Test a subclass receives its superclass's method mapping with parameters."""
        mappings = MappingSet()
        parent = mappings.create_class_mapping("a.b", "a.Base")
        method = parent.create_method_mapping("c", "(I)V", "handle")
        method.create_parameter_mapping(1, "code")
        child = mappings.get_or_create_class_mapping("a.e")

        child.complete(StaticInheritanceProvider({"a.e": ["a.b"]}))

        inherited = child.get_method_mapping(MethodSignature("c", "(I)V"))
        assert inherited is not None
        assert inherited.deobfuscated_name == "handle"
        assert inherited.get_parameter_mapping(1).deobfuscated_name == "code"
        assert child.is_completed

    def test_own_mapping_wins(self) -> None:
        """Test a mapping declared on the subclass is not overwritten."""
        mappings = MappingSet()
        mappings.create_class_mapping("a.b").create_method_mapping("c", "()V", "parentName")
        child = mappings.create_class_mapping("a.e")
        child.create_method_mapping("c", "()V", "childName")

        child.complete(StaticInheritanceProvider({"a.e": ["a.b"]}))

        assert child.get_method_mapping(MethodSignature("c", "()V")).deobfuscated_name == "childName"

    def test_through_unmapped_intermediate(self) -> None:
        """Test mappings pass through a supertype that has no mapping of its own."""
        mappings = MappingSet()
        mappings.create_class_mapping("a.b").create_method_mapping("c", "()V", "run")
        child = mappings.get_or_create_class_mapping("a.f")

        child.complete(StaticInheritanceProvider({"a.f": ["a.e"], "a.e": ["a.b"]}))

        assert child.get_method_mapping(MethodSignature("c", "()V")).deobfuscated_name == "run"

    def test_non_inheritable_methods_skipped(self) -> None:
        """Test constructors, static and private methods are not inherited."""
        mappings = MappingSet()
        parent = mappings.create_class_mapping("a.b")
        parent.create_method_mapping("<init>", "()V", "ignored")
        parent.create_method_mapping("s", "()V", "staticName")
        parent.create_method_mapping("p", "()V", "privateName")
        parent.create_method_mapping("q", "()V", "packageName")
        provider = CountingProvider(
            {"x.e": ["a.b"]},
            {
                ("a.b", "s", "()V"): MethodInfo(name="s", is_static=True, visibility="public"),
                ("a.b", "p", "()V"): MethodInfo(name="p", visibility="private"),
                ("a.b", "q", "()V"): MethodInfo(name="q", visibility="package"),
            },
        )
        child = mappings.get_or_create_class_mapping("x.e")

        child.complete(provider)

        assert child.method_mappings == []

    def test_package_private_same_package(self) -> None:
        """Test package-private methods are inherited within the same package."""
        mappings = MappingSet()
        mappings.create_class_mapping("a.b").create_method_mapping("q", "()V", "packageName")
        provider = CountingProvider(
            {"a.e": ["a.b"]},
            {("a.b", "q", "()V"): MethodInfo(name="q", visibility="package")},
        )
        child = mappings.get_or_create_class_mapping("a.e")

        child.complete(provider)

        assert child.get_method_mapping(MethodSignature("q", "()V")) is not None

    def test_runs_once(self) -> None:
        """Test a second completion does not query the provider again."""
        mappings = MappingSet()
        child = mappings.get_or_create_class_mapping("a.e")
        provider = CountingProvider({"a.e": []})

        child.complete(provider)
        child.complete(provider)

        assert provider.calls == ["a.e"]

    def test_concurrent_completion_runs_once(self) -> None:
        """Test racing completions of one class query its supertypes once."""
        mappings = MappingSet()
        mappings.create_class_mapping("a.b").create_method_mapping("c", "()V", "run")
        child = mappings.get_or_create_class_mapping("a.e")
        provider = CountingProvider({"a.e": ["a.b"]})
        barrier = threading.Barrier(8)

        def complete() -> None:
            barrier.wait()
            child.complete(provider)

        threads = [threading.Thread(target=complete) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert provider.calls.count("a.e") == 1
        assert child.get_method_mapping(MethodSignature("c", "()V")).deobfuscated_name == "run"

    def test_cyclic_hierarchy_terminates(self) -> None:
        """Test a cyclic supertype table does not recurse forever."""
        mappings = MappingSet()
        first = mappings.create_class_mapping("a.b")
        first.create_method_mapping("c", "()V", "run")
        second = mappings.create_class_mapping("a.e")

        second.complete(StaticInheritanceProvider({"a.e": ["a.b"], "a.b": ["a.e"]}))

        assert second.get_method_mapping(MethodSignature("c", "()V")) is not None
        assert first.is_completed

    def test_providers_satisfy_protocol(self) -> None:
        """Test provider implementations satisfy the inheritance protocol."""
        assert isinstance(StaticInheritanceProvider(), InheritanceProvider)
        assert isinstance(CountingProvider({}), InheritanceProvider)
