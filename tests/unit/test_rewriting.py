"""
Tests for annotation stripping and crate-path rewriting on single items.
"""

from cratepack.passes.attributes import filter_attributes, is_stripped, nested_attribute_edits
from cratepack.passes.path_rewriting import crate_path_edits, macro_regions, relative_root
from cratepack.shared.nodes import Edit


def _apply(source, edits):
    out = []
    pos = 0
    for edit in sorted(edits, key=lambda e: e.start):
        out.append(source[pos:edit.start])
        out.append(edit.replacement)
        pos = edit.end
    out.append(source[pos:])
    return "".join(out)


class TestAttributeFilter:
    """Exact single-identifier names are stripped; everything else stays."""

    def test_stripped_names(self, parser):
        source = (
            "/// doc comment\n"
            "#[doc = \"text\"]\n"
            "#[allow(dead_code)]\n"
            "#[cfg(feature = \"x\")]\n"
            "#[warn(missing_docs)]\n"
            "#[derive(Debug)]\n"
            "#[inline]\n"
            "#[rustfmt::skip]\n"
            "#[cfg_attr(test, derive(Eq))]\n"
            "#[allowed]\n"
            "struct S;\n"
        )
        attrs = parser.parse(source, "lib.rs").items[0].attrs
        kept = [attr.text for attr in filter_attributes(attrs)]
        assert kept == [
            "#[derive(Debug)]",
            "#[inline]",
            "#[rustfmt::skip]",
            "#[cfg_attr(test, derive(Eq))]",
            "#[allowed]",
        ]

    def test_inner_doc_comment_stripped(self, parser):
        parsed = parser.parse("//! module docs\n#![feature(test)]\n", "lib.rs")
        assert [is_stripped(attr) for attr in parsed.inner_attrs] == [True, False]


class TestNestedAttributeEdits:
    """Stripped attributes inside item bodies are deleted from the slice."""

    def test_own_line_attribute_takes_line(self, parser):
        source = (
            "impl S {\n"
            "    /// Creates S.\n"
            "    #[allow(clippy::new_without_default)]\n"
            "    #[inline]\n"
            "    pub fn new() -> Self { S }\n"
            "}\n"
        )
        parsed = parser.parse(source, "lib.rs")
        item = parsed.items[0]
        edits = nested_attribute_edits(parsed, item.location.start, item.location.end)
        assert _apply(source, edits) == (
            "impl S {\n"
            "    #[inline]\n"
            "    pub fn new() -> Self { S }\n"
            "}\n"
        )

    def test_inline_attribute_removed_with_trailing_space(self, parser):
        source = "struct S { #[allow(unused)] x: u8, #[serde(skip)] y: u8 }\n"
        parsed = parser.parse(source, "lib.rs")
        item = parsed.items[0]
        edits = nested_attribute_edits(parsed, item.location.start, item.location.end)
        assert _apply(source, edits) == "struct S { x: u8, #[serde(skip)] y: u8 }\n"

    def test_nested_inner_attribute(self, parser):
        source = "fn f() {\n    #![allow(unused)]\n    let x = 1;\n}\n"
        parsed = parser.parse(source, "lib.rs")
        item = parsed.items[0]
        edits = nested_attribute_edits(parsed, item.location.start, item.location.end)
        assert _apply(source, edits) == "fn f() {\n    let x = 1;\n}\n"

    def test_block_doc_comments_removed(self, parser):
        source = (
            "impl G {\n"
            "    /** Computes the gcd. */\n"
            "    pub fn gcd(&self) -> u64 { 1 }\n"
            "    /**\n"
            "     * Least common multiple.\n"
            "     */\n"
            "    pub fn lcm(&self) -> u64 { /*! inner */ 2 }\n"
            "    /* plain */\n"
            "}\n"
        )
        parsed = parser.parse(source, "lib.rs")
        item = parsed.items[0]
        edits = nested_attribute_edits(parsed, item.location.start, item.location.end)
        assert _apply(source, edits) == (
            "impl G {\n"
            "    pub fn gcd(&self) -> u64 { 1 }\n"
            "    pub fn lcm(&self) -> u64 { 2 }\n"
            "    /* plain */\n"
            "}\n"
        )



class TestCratePathRewriting:
    """`crate::` becomes a depth-relative path; macros route through the alias."""

    def test_relative_root(self):
        assert relative_root(0) == "self"
        assert relative_root(1) == "super"
        assert relative_root(3) == "super::super::super"

    def _rewrite(self, parser, source, depth, alias="algorist", macro=False):
        parsed = parser.parse(source, "lib.rs")
        item = parsed.items[0]
        edits = crate_path_edits(parsed, item.location.start, item.location.end, depth, alias,
                                 whole_span_is_macro=macro)
        return _apply(source, edits)

    def test_use_at_depth_two(self, parser):
        assert self._rewrite(parser, "use crate::math::primes;\n", 2) == "use super::super::math::primes;\n"

    def test_use_at_root(self, parser):
        assert self._rewrite(parser, "use crate::io::Scanner;\n", 0) == "use self::io::Scanner;\n"

    def test_paths_in_bodies(self, parser):
        source = "fn f() -> crate::io::Out { crate::io::Out::new() }\n"
        assert self._rewrite(parser, source, 1) == "fn f() -> super::io::Out { super::io::Out::new() }\n"

    def test_visibility_restriction_untouched(self, parser):
        source = "pub(crate) fn f() {}\n"
        assert self._rewrite(parser, source, 2) == source

    def test_macro_body_routes_through_alias(self, parser):
        source = "macro_rules! m { () => { $crate::io::read() }; }\n"
        expected = "macro_rules! m { () => { $crate::algorist::io::read() }; }\n"
        assert self._rewrite(parser, source, 2, macro=True) == expected

    def test_nested_macro_rules_detected(self, parser):
        source = "fn f() {\n    macro_rules! m { () => { crate::x::y() }; }\n    crate::x::y();\n}\n"
        expected = "fn f() {\n    macro_rules! m { () => { crate::algorist::x::y() }; }\n    super::x::y();\n}\n"
        assert self._rewrite(parser, source, 1) == expected

    def test_dollar_crate_outside_macro_left_alone(self, parser):
        source = "fn f() { $crate::x(); }\n"
        assert self._rewrite(parser, source, 1) == source

    def test_macro_regions(self, parser):
        parsed = parser.parse("fn f() { macro_rules! a { () => {} } }\n", "lib.rs")
        regions = macro_regions(parsed.tokens)
        assert len(regions) == 1
        start, end = regions[0]
        assert parsed.source[start:end] == "macro_rules! a { () => {} }"

    def test_edits_inside_removed_spans_skipped(self, parser):
        source = "fn f() { crate::a(); }\n"
        parsed = parser.parse(source, "lib.rs")
        item = parsed.items[0]
        start = source.index("crate")
        skip = [Edit(start, start + len("crate::a();"))]
        assert crate_path_edits(parsed, item.location.start, item.location.end, 1, "algorist", skip=skip) == []
