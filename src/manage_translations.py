"""
Command line entry point for the page i18n workflow.

Sub-commands:
    scan      Find placeholder calls and match them against the CSV translations.
    import    Scan, match, merge into the page JSON files and rewrite the source calls.
    add-lang  Create a new language file for every selected page.
    clean     Find (and remove) translation keys that no source file uses.
    check     Compare every language file of a page with the base language.
"""
import argparse
import logging
import os
import sys
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from src.add_language import LanguageAdder
from src.app_config import AppConfig, load_app_config
from src.code_replacer import CodeReplacer, convert_to_replace_tasks
from src.csv_matcher import CSVMatcher, MatchResult
from src.file_utils import to_posix, write_text_atomic
from src.git_utils import check_git_status
from src.json_updater import RECONCILE_MODES, JSONUpdater, convert_to_update_tasks
from src.key_cleaner import KeyCleaner, UnusedKeyInfo
from src.logging_config import LOGGER_NAME
from src.placeholder_rules import PlaceholderProcessor
from src.source_scanner import PlaceholderScanner
from src.translation_validator import validate_page

logger = logging.getLogger(LOGGER_NAME)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_CONFIG_ERROR = 2

MAX_EXAMPLES = 5


@dataclass
class BatchReport:
    """Outcome of one command, printed as the closing summary."""
    command: str
    succeeded: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    blocked: List[str] = field(default_factory=list)

    @property
    def exit_code(self) -> int:
        return EXIT_FAILURE if self.failed or self.blocked else EXIT_OK

    def print_summary(self) -> None:
        print()
        print(f"=== {self.command} summary ===")
        print(f"Succeeded: {len(self.succeeded)}")
        print(f"Failed:    {len(self.failed)}")
        for item in self.failed:
            print(f"  - {item}")
        print(f"Blocked:   {len(self.blocked)}")
        for item in self.blocked:
            print(f"  - {item}")


def _split_list_arg(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [item.strip() for item in value.split(',') if item.strip()]


def _selected_pages(config: AppConfig, pages_arg: Optional[str]) -> List[str]:
    explicit = _split_list_arg(pages_arg)
    if explicit:
        return explicit
    filtered, skipped, total = config.page_filter.scan_and_filter_pages(config.src_path)
    logger.info("Pages: %d selected, %d skipped, %d total", len(filtered), len(skipped), total)
    return filtered


def _build_scanner(config: AppConfig) -> PlaceholderScanner:
    return PlaceholderScanner(
        config.src_path,
        config.page_filter,
        placeholder_prefix=config.placeholder_prefix,
        extensions=config.source_extensions,
        show_progress=True
    )


def _build_matcher(config: AppConfig, csv_dir: Optional[str] = None) -> CSVMatcher:
    return CSVMatcher(
        csv_dir or config.csv_directory,
        placeholder_rules=config.placeholder_rules,
        language_columns=config.language_columns,
        source_language=config.source_language,
        key_columns=config.key_columns,
        show_progress=True
    )


def _print_match_stats(result: MatchResult) -> None:
    stats = result.stats
    print(f"Placeholders found:  {stats.total}")
    print(f"Matched:             {stats.matched_count}")
    print(f"Unmatched:           {stats.unmatched_count}")
    print(f"Match rate:          {stats.match_rate}%")
    print(f"Named placeholders:  {stats.named_placeholder_count}")

    if result.matched:
        print("\nExamples:")
        for item in result.matched[:MAX_EXAMPLES]:
            print(f"  {item.placeholder} -> {item.key} ({item.file_path}:{item.line})")
    if result.unmatched:
        print("\nUnmatched:")
        for occurrence in result.unmatched[:MAX_EXAMPLES]:
            print(f"  {occurrence.placeholder} ({occurrence.file_path}:{occurrence.line})")
        if len(result.unmatched) > MAX_EXAMPLES:
            print(f"  ... and {len(result.unmatched) - MAX_EXAMPLES} more")


def write_scan_report(report_path: str, result: MatchResult) -> None:
    """Write a Markdown report of unmatched placeholders and translations needing review."""
    lines = ["## Placeholder Scan Report", ""]
    stats = result.stats
    lines.append(
        f"{stats.matched_count} of {stats.total} placeholder(s) matched ({stats.match_rate}%)."
    )
    lines.append("")

    if result.unmatched:
        lines.append("### ⚠️ Unmatched placeholders")
        lines.append("")
        lines.append("No CSV row carries these source texts. Add them to the translation sheet.")
        lines.append("")
        for occurrence in result.unmatched:
            lines.append(f"- `{occurrence.placeholder}` in `{occurrence.file_path}:{occurrence.line}`")
        lines.append("")

    flagged = [item for item in result.matched if item.warnings]
    if flagged:
        lines.append("### 📄 Translations requiring manual review")
        lines.append("")
        for item in flagged:
            lines.append(f"#### `{item.key}` (`{item.file_path}:{item.line}`)")
            for warning in item.warnings:
                lines.append(f"- {warning}")
            lines.append("")

    report_dir = os.path.dirname(report_path)
    if report_dir:
        os.makedirs(report_dir, exist_ok=True)
    write_text_atomic(report_path, "\n".join(lines) + "\n")
    logger.info("Wrote scan report to '%s'.", report_path)


def cmd_scan(args, config: AppConfig) -> int:
    scanner = _build_scanner(config)
    quick = scanner.quick_scan()
    logger.info("Quick scan: %d placeholder call(s) in %d file(s)", quick.count, len(quick.files))

    occurrences = scanner.scan()
    result = _build_matcher(config).match(occurrences)
    _print_match_stats(result)

    if args.report:
        write_scan_report(args.report, result)

    report = BatchReport('scan')
    report.succeeded = [item.placeholder for item in result.matched]
    report.print_summary()
    return EXIT_OK


def cmd_import(args, config: AppConfig) -> int:
    dry_run = args.dry_run or config.dry_run
    mode = args.mode or config.reconcile_mode
    report = BatchReport('import')

    occurrences = _build_scanner(config).scan()
    if not occurrences:
        logger.info("No placeholders found. Nothing to import.")
        report.print_summary()
        return EXIT_OK

    match_result = _build_matcher(config).match(occurrences)
    _print_match_stats(match_result)
    if not match_result.matched:
        logger.info("No placeholders matched the CSV translations. Nothing to import.")
        report.print_summary()
        return EXIT_OK

    tasks = convert_to_update_tasks(match_result.matched, config.src_path)
    update_result = JSONUpdater(mode, config.json_indent, dry_run).update(tasks)

    missing = [f"{item.page}: {item.key} (missing {', '.join(item.missing_langs)})" for item in update_result.missing]
    if update_result.blocked:
        report.blocked.extend(missing)
        report.print_summary()
        return report.exit_code

    for item in missing:
        logger.warning("Not written: %s", item)
    report.failed.extend(f"{path}: {error}" for path, error in update_result.failed_files.items())
    report.blocked.extend(f"{path}: no i18n directory" for path in update_result.skipped_pages)

    updated_pages = {os.path.normpath(path) for path in update_result.updated_pages}
    replaceable = [
        item for item in match_result.matched
        if os.path.normpath(os.path.join(config.src_path, item.page_name)) in updated_pages
    ]
    replace_result = CodeReplacer(dry_run).replace(convert_to_replace_tasks(replaceable))
    report.failed.extend(f"{path}: {error}" for path, error in replace_result.failed_files.items())

    print(f"\nJSON files updated:   {update_result.files_updated} ({update_result.keys_added} keys)")
    print(f"Source files updated: {replace_result.files_updated} ({replace_result.replacements} replacements)")
    if dry_run:
        print("[Dry Run] No files were modified.")

    report.succeeded.extend(update_result.updated_pages)
    report.print_summary()
    return report.exit_code


def cmd_add_lang(args, config: AppConfig) -> int:
    dry_run = args.dry_run or config.dry_run
    report = BatchReport('add-lang')

    pages = _selected_pages(config, args.pages)
    if not pages:
        logger.warning("No pages selected.")
        report.print_summary()
        return EXIT_OK

    adder = LanguageAdder(
        config.src_path,
        _build_matcher(config, args.csv_dir),
        base_language=config.base_language,
        mode=args.mode or config.reconcile_mode,
        json_indent=config.json_indent
    )

    if not args.overwrite:
        existing = adder.existing_lang_files(pages, args.lang)
        if existing:
            for path in existing:
                logger.warning("'%s' already exists; use --overwrite to replace it.", path)
            existing_set = set(existing)
            kept = []
            for page in pages:
                target = to_posix(adder.target_file(page, args.lang))
                if target in existing_set:
                    report.blocked.append(f"{page}: {args.lang}.json already exists")
                else:
                    kept.append(page)
            pages = kept

    run_report = adder.run(pages, args.lang, dry_run)
    for result in run_report.results:
        print(f"{result.page}: {result.matched}/{result.total_keys} matched -> {result.output_file}")
        if result.missing_keys:
            print(f"  missing: {', '.join(result.missing_keys[:MAX_EXAMPLES])}"
                  + (" ..." if len(result.missing_keys) > MAX_EXAMPLES else ""))
        if result.blocked:
            report.blocked.append(f"{result.page}: {result.missing} key(s) without {args.lang} translation")
        elif result.written or dry_run:
            report.succeeded.append(result.page)
    report.failed.extend(f"{page}: {error}" for page, error in run_report.failures.items())

    report.print_summary()
    return report.exit_code


def confirm(prompt: str) -> bool:
    """Ask a yes/no question on stdin. Anything but ``y``/``yes`` (including EOF) means no."""
    try:
        response = input(f"{prompt} [y/N] ").strip().lower()
    except EOFError:
        return False
    return response in ('y', 'yes')


def _parse_selection(answer: str, count: int) -> Optional[List[int]]:
    """Turn ``all``/``none``/``1,3`` into zero-based indexes. Returns None when the answer is invalid."""
    answer = answer.strip().lower()
    if answer in ('', 'a', 'all'):
        return list(range(count))
    if answer in ('n', 'none'):
        return []
    indexes = []
    for token in answer.replace(' ', ',').split(','):
        if not token:
            continue
        if not token.isdigit() or not 1 <= int(token) <= count:
            return None
        if int(token) - 1 not in indexes:
            indexes.append(int(token) - 1)
    return indexes


def select_keys_interactively(unused: List[UnusedKeyInfo]) -> List[str]:
    """Let the user pick, page by page, which unused keys to remove. Every key is selected by default."""
    by_page: Dict[str, List[UnusedKeyInfo]] = {}
    for info in unused:
        by_page.setdefault(info.page or 'unknown', []).append(info)

    selected: List[str] = []
    for page, infos in by_page.items():
        print(f"\nPage: {page}")
        for number, info in enumerate(infos, start=1):
            print(f"  {number}. {info.key} ({', '.join(info.languages)})")
        while True:
            try:
                answer = input(f"Keys to remove from {page} [all/none/1,2,...] (default all): ")
            except EOFError:
                answer = 'none'
            indexes = _parse_selection(answer, len(infos))
            if indexes is not None:
                break
            print(f"  Invalid selection '{answer}'. Use 'all', 'none' or numbers between 1 and {len(infos)}.")
        selected.extend(infos[i].key for i in indexes)
    return selected


def cmd_clean(args, config: AppConfig) -> int:
    report = BatchReport('clean')
    cleaner = KeyCleaner(
        config.src_path,
        config.page_filter,
        placeholder_prefix=config.placeholder_prefix,
        extensions=config.source_extensions,
        json_indent=config.json_indent
    )

    keys = _split_list_arg(args.keys)
    if not keys:
        unused = cleaner.find_unused_keys()
        if not unused:
            print("No unused keys found.")
            report.print_summary()
            return EXIT_OK
        print(f"Unused keys ({len(unused)}):")
        for info in unused:
            print(f"  [{info.page}] {info.key} ({', '.join(info.languages)})")
        keys = [info.key for info in unused]
        if args.interactive:
            keys = select_keys_interactively(unused)
            if not keys:
                print("No keys selected.")
                report.print_summary()
                return EXIT_OK

    if args.dry_run or config.dry_run:
        print("[Dry Run] Would remove:")
        for key in keys:
            print(f"  - {key}")
        print("[Dry Run] No keys were removed.")
        report.print_summary()
        return EXIT_OK

    if not check_git_status(force=args.force, cwd=config.project_root):
        report.blocked.append("uncommitted changes in the working tree")
        report.print_summary()
        return report.exit_code

    if not args.yes and not confirm(f"Delete {len(keys)} key(s) from all language files?"):
        print("Cancelled.")
        return EXIT_OK

    result = cleaner.remove_keys(keys)
    print(f"Removed {result.keys_removed} key(s) from {result.files_updated} file(s).")
    report.succeeded.extend(result.affected_files)
    report.failed.extend(f"{path}: {error}" for path, error in result.failed_files.items())
    report.print_summary()
    return report.exit_code


def cmd_check(args, config: AppConfig) -> int:
    report = BatchReport('check')
    processor = PlaceholderProcessor(config.placeholder_rules)

    for page in _selected_pages(config, args.pages):
        try:
            issues = validate_page(os.path.join(config.src_path, page), config.base_language, processor)
        except FileNotFoundError as e:
            report.failed.append(f"{page}: {e}")
            continue
        if issues:
            print(f"\n{page}:")
            for issue in issues:
                print(f"  - {issue}")
            report.failed.append(f"{page}: {len(issues)} issue(s)")
        else:
            report.succeeded.append(page)

    report.print_summary()
    return report.exit_code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='page-i18n',
        description='Extract, match and reconcile per-page translations.'
    )
    parser.add_argument('--config', metavar='PATH', help='Configuration file (default: config.yaml)')
    parser.add_argument('--log-level', metavar='LEVEL', help='Override the configured log level')
    subparsers = parser.add_subparsers(dest='command', help='Commands')

    scan_parser = subparsers.add_parser('scan', help='Scan placeholders and match them against the CSV files')
    scan_parser.add_argument('--report', metavar='PATH', help='Write a Markdown report')

    import_parser = subparsers.add_parser('import', help='Import matched translations and rewrite source calls')
    import_parser.add_argument('--mode', choices=RECONCILE_MODES, help='Override reconcile_mode')
    import_parser.add_argument('--dry-run', action='store_true', help='Do not write any file')

    add_lang_parser = subparsers.add_parser('add-lang', help='Create a language file for every selected page')
    add_lang_parser.add_argument('lang', help='Language code, e.g. tr')
    add_lang_parser.add_argument('--pages', help='Comma-separated page names (default: build_pages)')
    add_lang_parser.add_argument('--csv-dir', metavar='DIR', help='Override the CSV directory')
    add_lang_parser.add_argument('--mode', choices=RECONCILE_MODES, help='Override reconcile_mode')
    add_lang_parser.add_argument('--dry-run', action='store_true', help='Do not write any file')
    add_lang_parser.add_argument('--overwrite', action='store_true', help='Replace existing language files')

    clean_parser = subparsers.add_parser('clean', help='Remove translation keys no source file uses')
    clean_parser.add_argument('--dry-run', action='store_true', help='Only list unused keys')
    clean_parser.add_argument('--force', action='store_true', help='Skip the git working tree check')
    clean_parser.add_argument('--keys', help='Comma-separated keys to remove instead of the detected ones')
    clean_parser.add_argument(
        '-i', '--interactive', action='store_true', help='Choose which unused keys to remove, page by page'
    )
    clean_parser.add_argument('-y', '--yes', action='store_true', help='Do not ask for confirmation before deleting')

    check_parser = subparsers.add_parser('check', help='Validate language files against the base language')
    check_parser.add_argument('--pages', help='Comma-separated page names (default: build_pages)')

    return parser


COMMANDS = {
    'scan': cmd_scan,
    'import': cmd_import,
    'add-lang': cmd_add_lang,
    'clean': cmd_clean,
    'check': cmd_check,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return EXIT_FAILURE

    try:
        config = load_app_config(args.config, args.log_level)
    except ValueError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR

    try:
        return COMMANDS[args.command](args, config)
    except FileNotFoundError as e:
        # Missing CSV directory or source tree
        logger.error("%s", e)
        print(f"Configuration error: {e}", file=sys.stderr)
        return EXIT_CONFIG_ERROR


if __name__ == "__main__":
    sys.exit(main())
