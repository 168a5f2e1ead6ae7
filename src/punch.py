'''Command line driver.

Run with --help for details.'''

from __future__ import annotations
from pathlib import Path
from typing import Sequence
import argparse
import datetime
import logging
import os
import shlex
import subprocess
import sys

from rich.console import Console

from brf import OutputMode, PunchCard, format_month, parse_month, render_month
from config import Settings
from errors import PunchError, error, set_basename
from infer import infer_block, infer_date, infer_month
from months import Month, next_month, prev_month
from tracking import Timestamp


logger = logging.getLogger(__name__)



def make_parser() -> argparse.ArgumentParser:
    class Formatter(argparse.ArgumentDefaultsHelpFormatter, argparse.RawDescriptionHelpFormatter):
        pass

    parser = argparse.ArgumentParser(
        prog='punch',
        formatter_class=Formatter,
        description='Keeps track of worked hours in plain text files, '
                    'one file per month.',
        epilog='''\

Blocks are given as ranges ('8-12', '0830-1215', '13:00-17:30')
or as single times ('8', 'now'). A single time starts an ongoing block,
or closes the ongoing block of the day if there is one.

Examples:
  Record two blocks today:
  $ punch 8-12 13-1730

  Punch in, then punch out:
  $ punch now
  $ punch now

  Take out the lunch break on the 14th of last month:
  $ punch -p -d 14 -r 12-13

  Comment yesterday:
  $ punch -y -c 'Sick leave'
''')
    parser.add_argument(
        'blocks',
        metavar='BLOCK',
        help='Blocks to add (or remove with --remove).',
        nargs='*')
    parser.add_argument(
        '-r', '--remove',
        help='Remove the given blocks instead of adding them.',
        action='store_true')
    parser.add_argument(
        '-d', '--day',
        help='Work on the given day (D, D.M or D.M.Y).')
    parser.add_argument(
        '-y', '--yesterday',
        help='Work on yesterday.',
        action='store_true')
    parser.add_argument(
        '-m', '--month',
        help='Work on the given month (M or M.Y).')
    parser.add_argument(
        '-p', '--previous',
        help='Work on the previous month.',
        action='store_true')
    parser.add_argument(
        '-n', '--next',
        help='Work on the next month.',
        action='store_true')
    parser.add_argument(
        '-c', '--comment',
        help='Set the comment of the day.')
    parser.add_argument(
        '--clear-comment',
        help='Remove the comment of the day.',
        action='store_true')
    parser.add_argument(
        '-e', '--edit',
        help='Edit the BRF file of the month with $EDITOR.',
        action='store_true')
    parser.add_argument(
        '--brf',
        help='Open the directory with BRF files in the file browser.',
        action='store_true')
    parser.add_argument(
        '--raw',
        help='Print the month as it is stored in the BRF file.',
        action='store_true')
    parser.add_argument(
        '--dry-run',
        help='Show the changes without writing them to the BRF file.',
        action='store_true')
    parser.add_argument(
        '--config',
        help='Path to YAML configuration file '
             '(default: $PUNCH_CONFIG or ~/.config/punch/config.yaml).')
    parser.add_argument(
        '--verbose', '-v',
        help='Print diagnostic info (can be specified more than once).',
        action='count', default=0)
    return parser


def open_path(path: Path) -> None:
    '''Opens file or directory with appropriate application.'''

    if sys.platform == 'cygwin':
        cmd = ['cygstart']
    elif sys.platform.startswith('win'):
        cmd = ['explorer']
    elif sys.platform == 'darwin':
        cmd = ['open']
    else:
        cmd = ['xdg-open']

    rc = subprocess.call(cmd + [str(path)])
    if rc != 0:
        raise PunchError(f'failed to open \'{path}\'')


def edit_file(editor: str, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    rc = subprocess.call(shlex.split(editor) + [str(path)])
    if rc != 0:
        raise PunchError(f'editor exited with status {rc}')


def resolve_date(args: argparse.Namespace, today: datetime.date) -> datetime.date:
    '''Determines the date to work on.

    Month options move today to the same day of the chosen month
    (clamped to its length); --yesterday and --day are then resolved
    relative to that date.'''

    my = (today.month, today.year)
    if args.previous:
        my = prev_month(my)
    elif args.next:
        my = next_month(my)
    if args.month is not None:
        my = infer_month(args.month, my)

    month, year = my
    date = today
    if my != (today.month, today.year):
        date = datetime.date(year, month, min(today.day, Month(year, month).num_days))

    if args.yesterday:
        date -= datetime.timedelta(days=1)

    if args.day is not None:
        date = infer_date(args.day, date)

    return date


def read_month(path: Path, year: int, month: int) -> Month:
    if not path.exists():
        logger.info('%s does not exist yet', path)
        return Month(year, month)

    logger.info('reading %s', path)
    return parse_month(path.read_text(encoding='utf-8'), year, month)


def write_month(month: Month, path: Path) -> None:
    '''Replaces the BRF file of the month. The old file stays intact
    if writing fails.'''

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + '.tmp')
    try:
        tmp.write_text(format_month(month, OutputMode.FILE) + '\n', encoding='utf-8')
        os.replace(tmp, path)
    except OSError:
        tmp.unlink(missing_ok=True)
        raise
    logger.info('wrote %s', path)


def punch(
    args: argparse.Namespace,
    settings: Settings,
    today: datetime.date,
    console: Console,
    now: Timestamp | None = None
) -> PunchCard:
    '''Applies the command line to the BRF file of the chosen month.
    Returns the dates that were looked at and changed.'''

    card = PunchCard()

    if args.brf:
        open_path(settings.hours_dir)
        return card

    date = resolve_date(args, today)
    card.select(date)
    path = settings.month_path(date.year, date.month)

    if args.edit:
        edit_file(settings.editor, path)
        return card

    month = read_month(path, date.year, date.month)
    day = month.add_day(date)

    if args.clear_comment:
        day.clear_comment()
        card.modify(date)

    if args.comment is not None:
        day.set_comment(args.comment)
        card.modify(date)

    for s in args.blocks:
        block = infer_block(s, day, now)
        if args.remove:
            logger.info('%s: removing %s', date, block)
            day.remove_block(block)
        else:
            logger.info('%s: adding %s', date, block)
            day.add_block(block)

    if args.blocks:
        card.modify(date)

    if args.raw:
        console.print(
            format_month(month, OutputMode.FILE),
            markup=False, highlight=False, emoji=False
        )
    else:
        console.print(render_month(month, card))

    if card.has_modifications and not args.dry_run:
        month.cleanup()
        write_month(month, path)

    return card


def run(
    argv: Sequence[str] | None = None,
    settings: Settings | None = None,
    today: datetime.date | None = None,
    console: Console | None = None,
    now: Timestamp | None = None
) -> int:
    '''Runs the tool and returns the exit status.'''

    set_basename('punch')

    args = make_parser().parse_args(argv)

    v = min(2, args.verbose)
    loglevel = logging.WARNING - 10 * v
    logging.basicConfig(level=loglevel)

    try:
        if settings is None:
            settings = Settings.load(args.config)
        if today is None:
            today = Timestamp.now().date
        punch(args, settings, today, console or Console(), now)
    except PunchError as e:
        error(str(e))
        return 1
    except OSError as e:
        error(str(e))
        return 1

    return 0


def main() -> None:
    sys.exit(run())


if __name__ == '__main__':
    main()
