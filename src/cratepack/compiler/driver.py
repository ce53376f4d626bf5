"""
Bundler Driver

Rust Pattern: typestate builder (Bundler<AnalyzeEntry> -> Bundler<ExpandLibrary>
-> Bundler<Completed>)

Each transition consumes the bundler it is called on and hands the run
context to a new one; the consumed bundler refuses further calls.
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Generic, List, Optional, TypeVar, Union

from ..analysis.closure import ImportClosureAnalyzer
from ..analysis.module_path import UsedModuleSet
from ..analysis.module_system import ModuleLoader
from ..backends.emitter import OutputEmitter
from ..backends.formatter import RustFormatter
from ..passes.base import AnalyzeEntry, BundleContext, Completed, ExpandLibrary, Phase
from ..passes.inliner import RecursiveInliner
from ..shared.errors import BundleError, EntryNotFoundError, ErrorReporter, FormatterError, PhaseOrderError
from ..utils.config import BundlerConfig

logger = logging.getLogger(__name__)

P = TypeVar("P", AnalyzeEntry, ExpandLibrary, Completed)


class Bundler(Generic[P]):
    """
    One bundling run, parameterized by its current phase.

    Start with Bundler.new(config, problem_id); the methods available on the
    result are annotated with the phase they require.
    """

    def __init__(self, ctx: BundleContext, state: P, loader: Optional[ModuleLoader] = None):
        self._ctx: Optional[BundleContext] = ctx
        self.state = state
        self._loader = loader if loader is not None else ModuleLoader(encoding=ctx.config.encoding)

    @classmethod
    def new(cls, config: BundlerConfig, problem_id: str) -> "Bundler[AnalyzeEntry]":
        return Bundler(BundleContext(config, problem_id), AnalyzeEntry())

    @property
    def phase(self) -> Phase:
        return self.state.phase

    @property
    def ctx(self) -> BundleContext:
        if self._ctx is None:
            raise PhaseOrderError(f"bundler in phase '{self.phase.value}' was already consumed")
        return self._ctx

    def _take(self, expected: type) -> BundleContext:
        if not isinstance(self.state, expected):
            raise PhaseOrderError(
                f"{expected.phase.value} called on a bundler in phase '{self.phase.value}'"
            )
        ctx = self.ctx
        self._ctx = None
        return ctx

    def _emitter(self, ctx: BundleContext) -> OutputEmitter:
        config = ctx.config
        return OutputEmitter(ctx.alias, config.wrapper_doc, encoding=config.encoding)

    # -- phases ------------------------------------------------------------

    def analyze_entry(self: "Bundler[AnalyzeEntry]") -> "Bundler[ExpandLibrary]":
        """
        Parse the entry unit, compute the used-module set and write the entry
        verbatim to the destination.

        Raises:
            EntryNotFoundError: the entry file does not exist (nothing written)
            ParseError: the entry unit is malformed
            OutputWriteError: the destination cannot be written
        """
        ctx = self._take(AnalyzeEntry)
        logger.info(f"Bundling {ctx.src} -> {ctx.dst}")
        if not ctx.src.is_file():
            raise EntryNotFoundError(
                f"entry file not found: {ctx.src}",
                help=f"expected problem `{ctx.problem_id}` under {ctx.src.parent}",
            )

        entry = self._loader.load_file(ctx.src)
        ctx.source_files[str(ctx.src)] = entry.source

        analyzer = ImportClosureAnalyzer(ctx.alias)
        used = analyzer.analyze(entry)
        if ctx.config.follow_library_imports and ctx.library_path.is_file():
            analyzer.expand(used, self._loader, ctx.config.library_dir)
        ctx.used_modules = used.freeze()
        logger.debug(f"Used modules: {used!r}")

        self._emitter(ctx).write_entry(ctx.dst, entry)
        return Bundler(ctx, ExpandLibrary(used_modules=used, base_path=ctx.config.library_dir), self._loader)

    def expand_library(self: "Bundler[ExpandLibrary]") -> "Bundler[Completed]":
        """
        Expand the library root against the used-module set and append the
        wrapper module to the destination.

        Raises:
            ModuleNotFoundError / AmbiguousModuleError: an allowed module
                cannot be resolved
            ParseError: a library file is malformed
            OutputWriteError: the destination cannot be appended to
        """
        state = self.state
        ctx = self._take(ExpandLibrary)
        if not ctx.library_path.is_file():
            raise EntryNotFoundError(f"library root not found: {ctx.library_path}")

        library = self._loader.load_file(ctx.library_path)
        ctx.source_files[str(ctx.library_path)] = library.source
        inliner = RecursiveInliner(self._loader, state.used_modules, ctx.alias)
        expanded = inliner.expand(library, state.base_path)
        logger.debug(f"Expanded {len(inliner.expanded)} module(s), pruned {len(inliner.pruned)}")

        self._emitter(ctx).append_library(ctx.dst, expanded)
        return Bundler(ctx, Completed(expanded=expanded), self._loader)

    def finish(self: "Bundler[Completed]") -> BundleContext:
        """
        Run the optional formatter and release the run context.

        Formatter failures end up in ctx.warnings; they never fail the run.
        """
        ctx = self._take(Completed)
        if ctx.config.format_output:
            try:
                RustFormatter(ctx.config.formatter_command).format_file(ctx.dst)
            except FormatterError as e:
                e.with_context(phase=Phase.COMPLETED.value)
                logger.warning(f"{e.message}")
                ctx.reporter.report_exception(e)
                ctx.warnings.append(e.message)
        logger.info(f"Problem {ctx.problem_id} bundled successfully into {ctx.dst}")
        return ctx

    def run(self: "Bundler[AnalyzeEntry]") -> BundleContext:
        """
        Execute every phase in order.

        The first fatal error propagates with the failing phase attached;
        whatever was already written to the destination stays there.
        """
        bundler: Union[Bundler[AnalyzeEntry], Bundler[ExpandLibrary], Bundler[Completed]] = self
        try:
            bundler = bundler.analyze_entry()
            bundler = bundler.expand_library()
        except BundleError as e:
            # The bundler that raised is the one whose phase failed.
            raise e.with_context(phase=bundler.phase.value)
        return bundler.finish()


@dataclass
class BundleResult:
    """Outcome of one run (programmatic API)."""
    success: bool
    output_path: Optional[Path] = None
    used_modules: Optional[UsedModuleSet] = None
    warnings: List[str] = field(default_factory=list)
    error: Optional[BundleError] = None
    reporter: ErrorReporter = field(default_factory=ErrorReporter)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)


class BundleDriver:
    """
    Bundler front door.

    Rust Pattern: rustc_driver::driver
    """

    def __init__(self, config: Optional[BundlerConfig] = None):
        self.config = config if config is not None else BundlerConfig.from_env()

    def bundle(self, problem_id: str) -> BundleResult:
        bundler = Bundler.new(self.config, problem_id)
        output_path = bundler.ctx.dst
        reporter = bundler.ctx.reporter
        try:
            ctx = bundler.run()
        except BundleError as e:
            logger.debug(f"Bundling {problem_id} failed: {e.message}")
            reporter.report_exception(e)
            return BundleResult(success=False, output_path=output_path, error=e, reporter=reporter)
        return BundleResult(
            success=True,
            output_path=output_path,
            used_modules=ctx.used_modules,
            warnings=list(ctx.warnings),
            reporter=reporter,
        )
