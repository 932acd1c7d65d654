#!/usr/bin/python3

from .chip_models import ChipModel
from .freq_engine import FreqEngine
from .pll_constants import INCREMENTS, SWEEP_STEP
from .pll_solver import require_settings, solve
from .pll_tools import SynthesisFailed, freq_to_str, str_to_freq
from .ramp_step import ByDelta, ByIndex

import argparse, sys

def report_models() -> None:
    for model in ChipModel:
        spec = model.spec
        print(f'{model.value}: {freq_to_str(spec.min_freq, 0)} to '
              f'{freq_to_str(spec.max_freq, 0)}, '
              f'default {freq_to_str(spec.default_freq, 0)}')
        for f in spec.options:
            actual = solve(model, f)
            tag = ' (default)' if f == spec.default_freq else ''
            if actual is None:
                print(f'    {f:g}{tag}: not achievable')
            elif actual != f:
                print(f'    {f:g}{tag}: actually {freq_to_str(actual)}')
            else:
                print(f'    {f:g}{tag}')

def report_solve(model: ChipModel, freqs: list[float]) -> bool:
    '''Print the PLL settings for each frequency.  Returns False if any
    failed.'''
    ok = True
    for f in freqs:
        try:
            settings = require_settings(model, f)
        except SynthesisFailed as e:
            print(e, file=sys.stderr)
            ok = False
            continue
        print(f'{freq_to_str(f)}: {settings}', end='')
        actual = settings.rounded()
        if abs(actual - f) >= 0.005:
            print(f' error {freq_to_str(actual - f)}', end='')
        print()
    return ok

def report_ramp(engine: FreqEngine, model: ChipModel, width: int = 8) -> None:
    ramp = engine.ramp(model)
    print(f'{model.value}: {len(ramp)} frequencies')
    for i in range(0, len(ramp), width):
        print(' '.join(f'{f:7.2f}' for f in ramp[i : i + width]))

def do_step(engine: FreqEngine, model: ChipModel, current: float,
            args: argparse.Namespace) -> float:
    if args.delta is not None:
        return engine.step(model, current, ByDelta(args.delta))
    if args.up is not None:
        count, direction = args.up, 1
    else:
        count, direction = args.down, -1
    for _ in range(count):
        current = engine.step(model, current, ByIndex(direction))
    return model.clamp(current)

def positive_int(s: str) -> int:
    n = int(s)
    if n < 1:
        raise ValueError(f'{s} is not positive')
    return n

# Set the name to give sensible argparse help text.
positive_int.__name__ = 'positive integer'

def add_to_argparse(argp: argparse.ArgumentParser,
                    dest: str = 'command', metavar: str = 'COMMAND') -> None:
    subp = argp.add_subparsers(
        dest=dest, metavar=metavar, required=True, help='Sub-command')

    subp.add_parser('models', help='List ASIC models',
                    description='''List the supported ASIC models, their
                    frequency ranges and suggested settings.''')

    solvep = subp.add_parser(
        'solve', aliases=['actual'], help='Actual frequency',
        description='''Report the frequency the ASIC will actually run at for
        each requested frequency, along with the PLL dividers used.''',
        epilog='''The frequency can be specified as either fraction (1471/3)
        or a decimal number (490.5), with an optional unit that defaults to
        MHz.''')
    solvep.add_argument('MODEL', type=ChipModel.get, help='ASIC model')
    solvep.add_argument('FREQ', type=str_to_freq, nargs='+',
                        help='Requested frequencies')

    rampp = subp.add_parser(
        'ramp', help='List valid frequencies',
        description='''List every frequency the ASIC can run at exactly,
        within its operating range.''')
    rampp.add_argument('MODEL', type=ChipModel.get, help='ASIC model')

    stepp = subp.add_parser(
        'step', help='Step a frequency',
        description='''Step from a frequency to a neighbouring valid
        frequency, either by ramp position or by approximately a number of
        MHz.''',
        epilog=f'''The settings page offers increments of
        {", ".join(str(i) for i in INCREMENTS)} MHz.''')
    stepp.add_argument('MODEL', type=ChipModel.get, help='ASIC model')
    stepp.add_argument('FREQ', type=str_to_freq, help='Current frequency')
    how = stepp.add_mutually_exclusive_group(required=True)
    how.add_argument('-u', '--up', type=positive_int, metavar='N',
                     help='Step up N valid frequencies')
    how.add_argument('-d', '--down', type=positive_int, metavar='N',
                     help='Step down N valid frequencies')
    how.add_argument('-D', '--delta', type=float, metavar='MHZ',
                     help='Step by approximately MHZ')

    for p in rampp, stepp:
        p.add_argument('-s', '--sweep', type=float, default=SWEEP_STEP,
                       metavar='MHZ',
                       help=f'Ramp sweep resolution (default {SWEEP_STEP})')

def run_command(args: argparse.Namespace, command: str) -> None:
    if command == 'models':
        report_models()

    elif command in ('solve', 'actual'):
        if not report_solve(args.MODEL, args.FREQ):
            sys.exit(1)

    elif command in ('ramp', 'step') and args.sweep <= 0:
        print('Sweep resolution must be positive', file=sys.stderr)
        sys.exit(1)

    elif command == 'ramp':
        report_ramp(FreqEngine(args.sweep), args.MODEL)

    elif command == 'step':
        engine = FreqEngine(args.sweep)
        result = do_step(engine, args.MODEL, args.FREQ, args)
        print(freq_to_str(result))

    else:
        print(args)
        assert None, f'This should never happen: {command}'

def test_parse() -> None:
    argp = argparse.ArgumentParser()
    add_to_argparse(argp)
    args = argp.parse_args(['solve', 'bm1368', '490', '0.5GHz'])
    assert args.MODEL is ChipModel.BM1368
    assert args.FREQ == [490, 500]
    args = argp.parse_args(['step', 'BM1370', '500', '--delta', '-25'])
    assert args.delta == -25 and args.up is None
    assert args.sweep == SWEEP_STEP

def test_do_step() -> None:
    argp = argparse.ArgumentParser()
    add_to_argparse(argp)
    engine = FreqEngine()
    model = ChipModel.BM1397
    args = argp.parse_args(['step', 'BM1397', '425', '-u', '2'])
    assert do_step(engine, model, args.FREQ, args) == 430
    args = argp.parse_args(['step', 'BM1397', '425', '-d', '1'])
    assert do_step(engine, model, args.FREQ, args) == 422.5
    args = argp.parse_args(['step', 'BM1397', '425', '-D', '25'])
    assert do_step(engine, model, args.FREQ, args) == 450

def test_step_counts(capsys) -> None:
    argp = argparse.ArgumentParser()
    add_to_argparse(argp)
    for bad in ['-u', '0'], ['-d', '-2'], ['--up', 'x']:
        try:
            argp.parse_args(['step', 'BM1366', '500'] + bad)
            assert False, bad
        except SystemExit:
            pass
    assert 'positive integer' in capsys.readouterr().err

    engine = FreqEngine()
    model = ChipModel.BM1366
    args = argp.parse_args(['step', 'BM1366', '1000', '--up', '1'])
    assert do_step(engine, model, args.FREQ, args) == 650
    args = argp.parse_args(['step', 'BM1366', '500', '--down', '2'])
    assert do_step(engine, model, args.FREQ, args) < 500
    # No steps taken still lands in range.
    args = argparse.Namespace(delta=None, up=0, down=None)
    assert do_step(engine, model, 1000, args) == 650
    args = argparse.Namespace(delta=None, up=None, down=0)
    assert do_step(engine, model, 10, args) == 200

def test_report_solve(capsys) -> None:
    assert report_solve(ChipModel.BM1397, [425, 426])
    out = capsys.readouterr().out.splitlines()
    assert out[0] == '425.00 MHz: 425 MHz = 25 MHz * 170 / (2 * 1 * 5)'
    assert out[1].startswith('426.00 MHz: 427½ MHz')
    assert out[1].endswith('error 1.50 MHz')
    assert not report_solve(ChipModel.BM1368, [490.3])
    assert 'No BM1368 PLL settings' in capsys.readouterr().err

if __name__ == '__main__':
    argp = argparse.ArgumentParser(description='ASIC PLL frequency utility')
    add_to_argparse(argp)

    args = argp.parse_args()
    run_command(args, args.command)
