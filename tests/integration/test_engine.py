"""Integration tests for remapping Java sources end to end in memory."""

from collections.abc import Callable

import pytest

from jremap.core.models import BindingKind, MethodBinding, VariableBinding
from jremap.java.adapter import JavaAdapter
from jremap.mappings.inheritance import StaticInheritanceProvider
from jremap.mappings.model import MappingSet
from jremap.remap.engine import RemapperVisitor, remap_unit
from jremap.remap.slots import RemapInvariantError

STATIC_METHOD = """package a;
public class b {
    public static void c(long d, int e) { System.out.println(d + e); }
}
"""

INSTANCE_METHOD = """package a;
public class b {
    public void c(int d, double e) { d = d + (int) e; }
}
"""

CONSTRUCTORS = """package a;
public class b {
    private int c;
    public b() { this(0); }
    public b(int c) { this.c = c; }
    public b(long d, String e) { this((int) d); }
}
"""

LAMBDA = """package a;
public class b {
    public void c(int d) {
        java.util.function.IntConsumer op = d -> System.out.println(d);
        op.accept(d);
    }
}
"""


class TestParameterSlots:
    """Parameters are renamed through their JVM local variable slot."""

    def test_static_method_with_wide_parameter(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test a static method's parameters occupy slots 0 and 2."""
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "deobfuscated": "com.x.Util",
            "methods": [{
                "obfuscated": "c",
                "descriptor": "(JI)V",
                "deobfuscated": "run",
                "parameters": [
                    {"index": 0, "deobfuscated": "start"},
                    {"index": 2, "deobfuscated": "count"},
                ],
            }],
        }])

        result = remap_sources({"a/b.java": STATIC_METHOD}, mappings)["a/b.java"]

        assert result == """package a;
public class Util {
    public static void run(long start, int count) { System.out.println(start + count); }
}
"""

    def test_instance_method_reserves_receiver_slot(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test an instance method's parameters occupy slots 1 and 2."""
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "methods": [{
                "obfuscated": "c",
                "descriptor": "(ID)V",
                "parameters": [
                    {"index": 1, "deobfuscated": "first"},
                    {"index": 2, "deobfuscated": "second"},
                ],
            }],
        }])

        result = remap_sources({"a/b.java": INSTANCE_METHOD}, mappings)["a/b.java"]

        assert "public void c(int first, double second) { first = first + (int) second; }" in result

    def test_slot_zero_of_instance_method_is_receiver(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test a mapping for slot 0 never renames a parameter of an instance method."""
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "methods": [{
                "obfuscated": "c",
                "descriptor": "(ID)V",
                "parameters": [{"index": 0, "deobfuscated": "self"}],
            }],
        }])

        result = remap_sources({"a/b.java": INSTANCE_METHOD}, mappings)["a/b.java"]

        assert result == INSTANCE_METHOD

    def test_lambda_parameter_does_not_take_method_mapping(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test a lambda parameter named like the method parameter keeps its own slot."""
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "methods": [{
                "obfuscated": "c",
                "descriptor": "(I)V",
                "parameters": [{"index": 1, "deobfuscated": "value"}],
            }],
        }])

        result = remap_sources({"a/b.java": LAMBDA}, mappings)["a/b.java"]

        assert "public void c(int value) {" in result
        assert "op = d -> System.out.println(d);" in result
        assert "op.accept(value);" in result

    def test_lambda_parameter_mapped_through_synthetic_method(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test lambda parameters are renamed from the mapping of the synthetic method."""
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "methods": [
                {
                    "obfuscated": "c",
                    "descriptor": "(I)V",
                    "parameters": [{"index": 1, "deobfuscated": "value"}],
                },
                {
                    "obfuscated": "lambda$c$0",
                    "descriptor": "(Ljava/lang/Object;)Ljava/lang/Object;",
                    "parameters": [{"index": 1, "deobfuscated": "item"}],
                },
            ],
        }])

        result = remap_sources({"a/b.java": LAMBDA}, mappings)["a/b.java"]

        assert "public void c(int value) {" in result
        assert "op = item -> System.out.println(item);" in result
        assert "op.accept(value);" in result


class TestConstructors:
    """Constructors are renamed uniformly to the class's simple name."""

    def test_all_overloads_renamed(self, build_mappings: Callable, remap_sources: Callable) -> None:
        """Test every constructor follows the class rename, mapped or not."""
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "deobfuscated": "com.x.Counter",
            "fields": [{"obfuscated": "c", "deobfuscated": "value", "descriptor": "I"}],
            "methods": [{
                "obfuscated": "<init>",
                "descriptor": "(I)V",
                "parameters": [{"index": 1, "deobfuscated": "initial"}],
            }],
        }])

        result = remap_sources({"a/b.java": CONSTRUCTORS}, mappings)["a/b.java"]

        assert result == """package a;
public class Counter {
    private int value;
    public Counter() { this(0); }
    public Counter(int initial) { this.value = initial; }
    public Counter(long d, String e) { this((int) d); }
}
"""

    def test_nested_class_and_references(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test member classes take the last segment of their mapped binary name."""
        source = """package a;
public class b {
    public static class c {
        c() {}
    }
    c make() { return new c(); }
}
"""
        mappings = build_mappings([
            {"obfuscated": "a.b", "deobfuscated": "a.Outer"},
            {"obfuscated": "a/b$c", "deobfuscated": "a/Outer$Inner"},
        ])

        result = remap_sources({"a/b.java": source}, mappings)["a/b.java"]

        assert result == """package a;
public class Outer {
    public static class Inner {
        Inner() {}
    }
    Inner make() { return new Inner(); }
}
"""


class TestFields:
    """Fields are renamed only when their declaring class is mapped."""

    def test_unmapped_declaring_class_not_created(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test field occurrences never create class mappings."""
        source = """package a;
public class c {
    static int x;
    static { x = 1; }
}
"""
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "fields": [{"obfuscated": "x", "deobfuscated": "renamed"}],
        }])

        result = remap_sources({"a/c.java": source}, mappings)["a/c.java"]

        assert result == source
        assert "a.c" not in mappings

    def test_field_without_descriptor(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test a mapping without descriptor renames the field whatever its type."""
        source = """package a;
public class b {
    long x;
    long get() { return x; }
}
"""
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "fields": [{"obfuscated": "x", "deobfuscated": "total"}],
        }])

        result = remap_sources({"a/b.java": source}, mappings)["a/b.java"]

        assert "long total;" in result
        assert "return total;" in result

    def test_field_accessed_from_other_unit(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test qualified field accesses in another unit are renamed."""
        sources = {
            "a/b.java": "package a;\npublic class b { public static int x; }\n",
            "a/d.java": "package a;\nclass d { int y() { return b.x; } }\n",
        }
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "deobfuscated": "a.Config",
            "fields": [{"obfuscated": "x", "deobfuscated": "limit", "descriptor": "I"}],
        }])

        result = remap_sources(sources, mappings)

        assert result["a/b.java"] == "package a;\npublic class Config { public static int limit; }\n"
        assert result["a/d.java"] == "package a;\nclass d { int y() { return Config.limit; } }\n"


class TestInheritance:
    """Overriding methods inherit their supertype's mapping."""

    def test_override_in_unmapped_subclass(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test an override and a super call in an unmapped subclass are renamed."""
        sources = {
            "a/b.java": "package a;\npublic class b { public void c(int d) {} }\n",
            "a/e.java": (
                "package a;\n"
                "public class e extends b {\n"
                "    @Override public void c(int d) { super.c(d); }\n"
                "}\n"
            ),
        }
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "deobfuscated": "a.Base",
            "methods": [{
                "obfuscated": "c",
                "descriptor": "(I)V",
                "deobfuscated": "handle",
                "parameters": [{"index": 1, "deobfuscated": "code"}],
            }],
        }])

        result = remap_sources(sources, mappings)

        assert result["a/b.java"] == "package a;\npublic class Base { public void handle(int code) {} }\n"
        assert result["a/e.java"] == (
            "package a;\n"
            "public class e extends Base {\n"
            "    @Override public void handle(int code) { super.handle(code); }\n"
            "}\n"
        )

    def test_private_method_not_inherited(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test a same-named method in a subclass does not take a private method's mapping."""
        sources = {
            "a/b.java": "package a;\npublic class b { private void c() {} }\n",
            "a/e.java": "package a;\npublic class e extends b { void c() {} }\n",
        }
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "methods": [{"obfuscated": "c", "descriptor": "()V", "deobfuscated": "secret"}],
        }])

        result = remap_sources(sources, mappings)

        assert "private void secret()" in result["a/b.java"]
        assert result["a/e.java"] == sources["a/e.java"]


class TestReferenceForms:
    """Every form of reference follows its renamed declaration."""

    def test_enum_constants_in_case_labels(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test unqualified case labels of statement and rule switches are renamed."""
        sources = {
            "a/b.java": "package a;\npublic enum b { X, Y }\n",
            "a/c.java": (
                "package a;\n"
                "public class c {\n"
                "    int f(b v) {\n"
                "        switch (v) {\n"
                "            case X: return 1;\n"
                "            default: break;\n"
                "        }\n"
                "        return switch (v) { case X -> 1; case Y -> 2; };\n"
                "    }\n"
                "}\n"
            ),
        }
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "fields": [
                {"obfuscated": "X", "deobfuscated": "FIRST"},
                {"obfuscated": "Y", "deobfuscated": "SECOND"},
            ],
        }])

        result = remap_sources(sources, mappings)

        assert result["a/b.java"] == "package a;\npublic enum b { FIRST, SECOND }\n"
        assert "case FIRST: return 1;" in result["a/c.java"]
        assert "switch (v) { case FIRST -> 1; case SECOND -> 2; }" in result["a/c.java"]

    def test_static_imports(self, build_mappings: Callable, remap_sources: Callable) -> None:
        """Test single and on-demand static imports and their unqualified uses are renamed."""
        sources = {
            "a/c.java": (
                "package a;\n"
                "public class c {\n"
                "    public static final int L = 3;\n"
                "    public static void m() {}\n"
                "    public static int n(int x) { return x; }\n"
                "}\n"
            ),
            "a/d.java": (
                "package a;\n"
                "import static a.c.m;\n"
                "import static a.c.L;\n"
                "import static a.c.*;\n"
                "public class d {\n"
                "    void g() { m(); int v = L + n(1); }\n"
                "}\n"
            ),
        }
        mappings = build_mappings([{
            "obfuscated": "a.c",
            "deobfuscated": "a.Tools",
            "fields": [{"obfuscated": "L", "deobfuscated": "LIMIT", "descriptor": "I"}],
            "methods": [
                {"obfuscated": "m", "descriptor": "()V", "deobfuscated": "make"},
                {"obfuscated": "n", "descriptor": "(I)I", "deobfuscated": "next"},
            ],
        }])

        result = remap_sources(sources, mappings)

        assert result["a/d.java"] == (
            "package a;\n"
            "import static a.Tools.make;\n"
            "import static a.Tools.LIMIT;\n"
            "import static a.Tools.*;\n"
            "public class d {\n"
            "    void g() { make(); int v = LIMIT + next(1); }\n"
            "}\n"
        )

    def test_method_references(self, build_mappings: Callable, remap_sources: Callable) -> None:
        """Test `this::name` and `Type::name` follow the method they denote."""
        source = (
            "package a;\n"
            "public class b {\n"
            "    public void e(String s) {}\n"
            "    static void m() {}\n"
            "    void f(java.util.List<String> l) {\n"
            "        l.forEach(this::e);\n"
            "        Runnable r = b::m;\n"
            "    }\n"
            "}\n"
        )
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "methods": [
                {"obfuscated": "e", "descriptor": "(Ljava/lang/String;)V", "deobfuscated": "each"},
                {"obfuscated": "m", "descriptor": "()V", "deobfuscated": "make"},
            ],
        }])

        result = remap_sources({"a/b.java": source}, mappings)["a/b.java"]

        assert "public void each(String s) {}" in result
        assert "l.forEach(this::each);" in result
        assert "Runnable r = b::make;" in result

    def test_qualified_this_field_access(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test `Outer.this.field` resolves the field on the outer class."""
        source = (
            "package a;\n"
            "public class b {\n"
            "    int g;\n"
            "    int h() { return this.g; }\n"
            "    class i {\n"
            "        int v = b.this.g;\n"
            "        int w = g;\n"
            "    }\n"
            "}\n"
        )
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "fields": [{"obfuscated": "g", "deobfuscated": "gauge", "descriptor": "I"}],
        }])

        result = remap_sources({"a/b.java": source}, mappings)["a/b.java"]

        assert "int gauge;" in result
        assert "return this.gauge;" in result
        assert "int v = b.this.gauge;" in result
        assert "int w = gauge;" in result

    def test_anonymous_class_override(
        self, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test an override inside an anonymous class takes its interface's mapping."""
        sources = {
            "a/b.java": "package a;\npublic interface b { void c(int d); }\n",
            "a/e.java": (
                "package a;\n"
                "public class e {\n"
                "    b f() {\n"
                "        return new b() {\n"
                "            @Override public void c(int d) { System.out.println(d); }\n"
                "        };\n"
                "    }\n"
                "}\n"
            ),
        }
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "deobfuscated": "a.Handler",
            "methods": [{
                "obfuscated": "c",
                "descriptor": "(I)V",
                "deobfuscated": "handle",
                "parameters": [{"index": 1, "deobfuscated": "code"}],
            }],
        }])

        result = remap_sources(sources, mappings)

        assert result["a/e.java"] == (
            "package a;\n"
            "public class e {\n"
            "    Handler f() {\n"
            "        return new Handler() {\n"
            "            @Override public void handle(int code) { System.out.println(code); }\n"
            "        };\n"
            "    }\n"
            "}\n"
        )


class TestIdempotence:
    """Remapping already remapped output changes nothing."""

    @pytest.mark.parametrize("source", [STATIC_METHOD, CONSTRUCTORS, LAMBDA])
    def test_second_pass_is_noop(
        self, source: str, build_mappings: Callable, remap_sources: Callable
    ) -> None:
        """Test a second pass with the same mappings yields no edits."""
        classes = [{
            "obfuscated": "a.b",
            "deobfuscated": "com.x.Renamed",
            "fields": [{"obfuscated": "c", "deobfuscated": "value", "descriptor": "I"}],
            "methods": [
                {
                    "obfuscated": "c",
                    "descriptor": "(JI)V",
                    "deobfuscated": "run",
                    "parameters": [{"index": 0, "deobfuscated": "start"}],
                },
                {
                    "obfuscated": "c",
                    "descriptor": "(I)V",
                    "deobfuscated": "apply",
                    "parameters": [{"index": 1, "deobfuscated": "value"}],
                },
                {
                    "obfuscated": "<init>",
                    "descriptor": "(I)V",
                    "parameters": [{"index": 1, "deobfuscated": "initial"}],
                },
            ],
        }]

        first = remap_sources({"a/b.java": source}, build_mappings(classes))["a/b.java"]
        second = remap_sources({"a/b.java": first}, build_mappings(classes))["a/b.java"]

        assert first != source
        assert second == first


class TestUnmapped:
    """Sources without matching mappings are left untouched."""

    def test_empty_mapping_set(self, remap_sources: Callable) -> None:
        """Test an empty mapping set produces identical output."""
        sources = {"a/b.java": STATIC_METHOD, "a/c.java": CONSTRUCTORS}

        assert remap_sources(sources, MappingSet()) == sources


class TestInvariants:
    """Internal defects are reported, not silently ignored."""

    def test_parameter_without_declaring_method(self) -> None:
        """Test classifying a parameter binding without a method raises."""
        adapter = JavaAdapter()
        content = b"class A {}"
        unit = adapter.bind("A.java", content, adapter.build_symbol_table([("A.java", content)]))
        visitor = RemapperVisitor(unit, MappingSet(), StaticInheritanceProvider())
        orphan = VariableBinding(key="x", name="x", variable_kind=BindingKind.PARAMETER)

        with pytest.raises(RemapInvariantError):
            visitor.target_name(orphan)

    def test_lambda_binding_has_no_name_mapping(self) -> None:
        """Test lambda bindings themselves are never renamed."""
        adapter = JavaAdapter()
        content = b"class A {}"
        unit = adapter.bind("A.java", content, adapter.build_symbol_table([("A.java", content)]))
        visitor = RemapperVisitor(unit, MappingSet(), StaticInheritanceProvider())
        lam = MethodBinding(key="lambda:0:1", name="lambda$m$0", declaring_type="A", is_lambda=True)

        assert visitor.target_name(lam) is None

    def test_remap_unit_returns_sorted_edits(self, build_mappings: Callable) -> None:
        """Test edits come back ordered by offset."""
        adapter = JavaAdapter()
        content = STATIC_METHOD.encode("utf-8")
        table = adapter.build_symbol_table([("a/b.java", content)])
        unit = adapter.bind("a/b.java", content, table)
        mappings = build_mappings([{
            "obfuscated": "a.b",
            "deobfuscated": "a.Util",
            "methods": [{"obfuscated": "c", "descriptor": "(JI)V", "deobfuscated": "run"}],
        }])

        edits = remap_unit(unit, mappings, StaticInheritanceProvider())

        assert [e.kind for e in edits] == [BindingKind.CLASS, BindingKind.METHOD]
        assert edits[0].start_byte < edits[1].start_byte
