#!/usr/bin/python3

assert __name__ == '__main__'

import sys
if sys.version_info < (3, 10):
    print(f'Your python version {sys.version} is too old. ',
          'This program needs 3.10 or later')
    sys.exit(1)

import asicpll.freq_util as freq_util

import argparse

argp = argparse.ArgumentParser(
    description='ASIC PLL frequency utility',
    epilog='''Computes the frequencies the BM13xx mining ASICs can actually be
    clocked at, and steps between them.''')

freq_util.add_to_argparse(argp)

if len(sys.argv) < 2:
    argp.print_help()
    sys.exit(1)

args = argp.parse_args()

freq_util.run_command(args, args.command)
