"""
Tests for the import-closure analyzer: entry-unit use trees, qualified paths
in bodies and the transitive stage over library references.
"""

from cratepack.analysis.closure import (
    ImportClosureAnalyzer, live_items, path_chains, resolve_relative, use_tree_paths,
)
from cratepack.analysis.module_path import ModulePath
from cratepack.analysis.module_system import ModuleLoader
from cratepack.shared.nodes import UseGlob, UseGroup, UseName, UsePath, UseRename


def _paths(used):
    return [str(p) for p in used]


class TestUseTreePaths:
    """Flattening use trees into module path candidates."""

    def test_group_fan_out(self):
        tree = UseGroup([UsePath("a", UseName("x")), UseRename("b", "c"), UsePath("d", UseGlob())])
        assert list(use_tree_paths(tree, ("root",))) == [
            (("root", "a", "x"), False),
            (("root", "b"), False),
            (("root", "d"), True),
        ]

    def test_self_in_group_names_parent(self):
        tree = UsePath("math", UseGroup([UseName("self"), UseName("gcd")]))
        assert list(use_tree_paths(tree)) == [(("math",), False), (("math", "gcd"), False)]

    def test_bare_glob(self):
        assert list(use_tree_paths(UseGlob())) == [((), True)]


class TestPathChains:
    """Token-level `a::b::c` chains."""

    def _chains(self, parser, source):
        parsed = parser.parse(source, "main.rs")
        return [chain for chain, _ in path_chains(parsed.tokens)]

    def test_qualified_call(self, parser):
        chains = self._chains(parser, "fn main() { algorist::io::read(); }\n")
        assert ["algorist", "io", "read"] in chains

    def test_dollar_crate(self, parser):
        chains = self._chains(parser, "macro_rules! m { () => { $crate::io::read() }; }\n")
        assert ["$crate", "io", "read"] in chains

    def test_turbofish_continuation_not_a_start(self, parser):
        chains = self._chains(parser, "fn f() { Vec::<u8>::new(); }\n")
        assert ["new"] not in chains
        assert ["Vec"] in chains

    def test_group_members_fan_out(self, parser):
        source = "fn main() {\n    use algorist::math::{gcd::gcd, primes::{self, is_prime}};\n}\n"
        chains = self._chains(parser, source)
        assert ["algorist", "math", "gcd", "gcd"] in chains
        assert ["algorist", "math", "primes"] in chains
        assert ["algorist", "math", "primes", "is_prime"] in chains
        assert ["algorist", "math"] not in chains

    def test_renamed_group_member(self, parser):
        chains = self._chains(parser, "fn f() { use a::{b as c, d}; }\n")
        assert ["a", "b"] in chains
        assert ["a", "d"] in chains
        assert ["c"] not in chains

    def test_glob_flagged(self, parser):
        parsed = parser.parse("fn f() { use algorist::io::*; }\n", "main.rs")
        assert (["algorist", "io"], True) in list(path_chains(parsed.tokens))


class TestEntryAnalysis:
    """The Analyzer over the entry unit only."""

    def _analyze(self, parser, source, alias="algorist"):
        return ImportClosureAnalyzer(alias).analyze(parser.parse(source, "main.rs"))

    def test_single_use(self, parser):
        used = self._analyze(parser, "use algorist::math::gcd;\nfn main() {}\n")
        assert _paths(used) == ["math::gcd"]
        assert used.is_allowed(ModulePath.of("math"))
        assert not used.is_allowed(ModulePath.of("math", "primes"))

    def test_group_use(self, parser):
        used = self._analyze(parser, "use algorist::{io::Scanner, math::{gcd, lcm}};\n")
        assert _paths(used) == ["io::Scanner", "math::gcd", "math::lcm"]

    def test_glob_under_module(self, parser):
        used = self._analyze(parser, "use algorist::collections::*;\n")
        assert _paths(used) == ["collections"]
        assert not used.allow_all

    def test_root_glob_allows_everything(self, parser):
        used = self._analyze(parser, "use algorist::*;\n")
        assert used.allow_all
        assert used.is_allowed(ModulePath.of("anything"))

    def test_foreign_crates_ignored(self, parser):
        used = self._analyze(parser, "use std::collections::HashMap;\nuse crate::x;\n")
        assert len(used) == 0
        assert not used.allow_all

    def test_renamed_alias(self, parser):
        used = self._analyze(parser, "use algorist as alg;\nuse alg::math::gcd;\n")
        assert _paths(used) == ["math::gcd"]

    def test_rename_after_its_uses(self, parser):
        used = self._analyze(parser, "use lib::math::gcd::gcd;\nuse algorist as lib;\n")
        assert _paths(used) == ["math::gcd::gcd"]

    def test_chained_renames(self, parser):
        used = self._analyze(parser, "use second as third;\nuse algorist as second;\nuse third::io;\n")
        assert _paths(used) == ["io"]

    def test_rename_inside_body(self, parser):
        source = "fn main() {\n    use algorist as lib;\n    lib::io::read();\n}\n"
        assert _paths(self._analyze(parser, source)) == ["io::read"]

    def test_rename_alone_uses_nothing(self, parser):
        used = self._analyze(parser, "use algorist as lib;\nfn main() {}\n")
        assert len(used) == 0
        assert not used.allow_all

    def test_grouped_use_inside_body(self, parser):
        source = "fn main() {\n    use algorist::math::{gcd::gcd, primes::is_prime};\n}\n"
        used = self._analyze(parser, source)
        assert _paths(used) == ["math::gcd::gcd", "math::primes::is_prime"]

    def test_glob_use_inside_body(self, parser):
        used = self._analyze(parser, "fn main() {\n    use algorist::*;\n}\n")
        assert used.allow_all


    def test_qualified_paths_in_bodies(self, parser):
        used = self._analyze(parser, "fn main() {\n    let g = algorist::math::gcd::gcd(4, 6);\n}\n")
        assert _paths(used) == ["math::gcd::gcd"]

    def test_custom_alias(self, parser):
        used = self._analyze(parser, "use mylib::io;\nuse algorist::math;\n", alias="mylib")
        assert _paths(used) == ["io"]

    def test_no_library_use(self, parser):
        used = self._analyze(parser, "fn main() { println!(\"hi\"); }\n")
        assert len(used) == 0


class TestResolveRelative:
    """Resolving library-internal paths against the referring module."""

    def test_crate_absolute(self):
        assert resolve_relative(["crate", "math", "gcd"], ("io",)) == ModulePath.of("math", "gcd")
        assert resolve_relative(["$crate", "io"], ()) == ModulePath.of("io")

    def test_super_and_self(self):
        base = ("math", "gcd")
        assert resolve_relative(["super", "primes"], base) == ModulePath.of("math", "primes")
        assert resolve_relative(["super", "super", "io"], base) == ModulePath.of("io")
        assert resolve_relative(["self", "inner"], base) == ModulePath.of("math", "gcd", "inner")

    def test_super_beyond_root(self):
        assert resolve_relative(["super", "super", "x"], ("a",)) is None

    def test_declared_child(self):
        assert resolve_relative(["gcd", "Gcd"], ("math",), {"gcd"}) == ModulePath.of("math", "gcd", "Gcd")
        assert resolve_relative(["std", "io"], ("math",), {"gcd"}) is None

    def test_bare_crate(self):
        assert resolve_relative(["crate"], ()) is None


class TestLibraryReferences:
    """References found in one library module file."""

    def test_references_stop_at_test_marker(self, parser):
        source = (
            "use crate::io::Scanner;\n"
            "fn f() { super::primes::sieve(); }\n"
            "#[cfg(test)]\n"
            "mod tests { use crate::debug::dump; }\n"
        )
        parsed = parser.parse(source, "src/math/gcd.rs")
        refs = ImportClosureAnalyzer("algorist").library_references(parsed, ModulePath.of("math", "gcd"))
        assert ModulePath.of("io", "Scanner") in refs
        assert ModulePath.of("math", "primes", "sieve") in refs
        assert all(ref.segments[0] != "debug" for ref in refs)

    def test_grouped_use_inside_function(self, parser):
        source = "pub fn gcd() {\n    use crate::ext::{self, vec::sorted};\n}\n"
        parsed = parser.parse(source, "src/math/gcd.rs")
        refs = ImportClosureAnalyzer("algorist").library_references(parsed, ModulePath.of("math", "gcd"))
        assert refs == {ModulePath.of("ext"), ModulePath.of("ext", "vec", "sorted")}

    def test_live_items(self, parser):

        parsed = parser.parse("fn a() {}\n#[cfg(test)]\nfn b() {}\nfn c() {}\n", "lib.rs")
        assert len(live_items(parsed.items)) == 1


class TestTransitiveExpansion:
    """Fixpoint over library-internal references."""

    def test_follows_crate_imports(self, parser, crate):
        crate.lib("mod math;\nmod io;\nmod graph;\n")
        crate.module("math.rs", "pub mod gcd;\npub mod primes;\n")
        crate.module("math/gcd.rs", "use crate::math::primes::is_prime;\npub fn gcd() {}\n")
        crate.module("math/primes.rs", "pub fn is_prime() {}\n")
        crate.module("io.rs", "pub fn read() {}\n")
        crate.module("graph.rs", "pub fn bfs() {}\n")

        analyzer = ImportClosureAnalyzer("algorist")
        used = analyzer.analyze(parser.parse("use algorist::math::gcd::gcd;\n", "main.rs"))
        analyzer.expand(used, ModuleLoader(), crate.root / "src")

        assert used.is_allowed(ModulePath.of("math", "primes"))
        assert not used.is_allowed(ModulePath.of("io"))
        assert not used.is_allowed(ModulePath.of("graph"))

    def test_unresolvable_references_skipped(self, parser, crate):
        crate.lib("mod math;\n")
        crate.module("math.rs", "use crate::missing::thing;\npub fn f() {}\n")
        analyzer = ImportClosureAnalyzer("algorist")
        used = analyzer.analyze(parser.parse("use algorist::math::f;\n", "main.rs"))
        analyzer.expand(used, ModuleLoader(), crate.root / "src")
        assert ModulePath.of("missing", "thing") in used

    def test_broken_module_does_not_fail_analysis(self, parser, crate):
        crate.lib("mod math;\n")
        crate.module("math.rs", "pub fn f( {\n")
        analyzer = ImportClosureAnalyzer("algorist")
        used = analyzer.analyze(parser.parse("use algorist::math::f;\n", "main.rs"))
        analyzer.expand(used, ModuleLoader(), crate.root / "src")
        assert _paths(used) == ["math::f"]

    def test_allow_all_short_circuits(self, parser, crate):
        analyzer = ImportClosureAnalyzer("algorist")
        used = analyzer.analyze(parser.parse("use algorist::*;\n", "main.rs"))
        assert analyzer.expand(used, ModuleLoader(), crate.root / "src") is used
        assert len(used) == 0
