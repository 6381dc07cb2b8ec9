#!/usr/bin/env python3
"""
Imports ImmunoSEQ, IR-SEQ and MiXCR clone files into a MiAIRR repertoire table
"""
# Info
__author__ = 'LymphoSeq Development Team'
from lymphoseq import __version__, __date__

# Imports
import os
from argparse import ArgumentParser
from collections import OrderedDict
from textwrap import dedent

# Presto and LymphoSeq imports
from presto.IO import getOutputHandle, printLog
from lymphoseq.Defaults import default_out_args
from lymphoseq.Commandline import CommonHelpFormatter, checkArgs, getCommonArgParser, parseCommonArgs
from lymphoseq.IO import iReceptorFormat, readImmunoSeq, writeRepertoire
from lymphoseq.Schema import loadSchema


def importRepertoire(db_files, recursive=False, out_file=None, schema_file=None, nproc=1,
                     out_args=default_out_args, out_label='airr', ireceptor=False):
    """
    Imports clone files and writes a single repertoire table

    Arguments:
      db_files : list of clone files and/or directories.
      recursive : if True search directories recursively.
      out_file : output file name. Automatically generated from the first input if None.
      schema_file : reference schema file. If None, use the packaged MiAIRR schema.
      nproc : number of processes used to import files.
      out_args : common output argument dictionary from parseCommonArgs.
      out_label : label added to generated output file names.
      ireceptor : if True write the iReceptor view of the table.

    Returns:
      str : output file name.
    """
    log = OrderedDict()
    log['START'] = 'ImportRepertoire'
    log['COMMAND'] = out_label
    log['INPUT'] = ','.join(os.path.basename(os.path.normpath(f)) for f in db_files)
    log['RECURSIVE'] = recursive
    printLog(log)

    schema = loadSchema(schema_file)
    db = readImmunoSeq(db_files, recursive=recursive, schema=schema, nproc=nproc)
    if ireceptor:
        db = iReceptorFormat(db, schema)

    # Open output
    if out_file is not None:
        out_handle = open(out_file, 'w')
    else:
        out_handle = getOutputHandle(os.path.normpath(db_files[0]), out_label=out_label,
                                     out_dir=out_args['out_dir'], out_name=out_args['out_name'],
                                     out_type='tsv')
    with out_handle:
        writeRepertoire(db, out_handle)

    log = OrderedDict()
    log['OUTPUT'] = os.path.basename(out_handle.name)
    log['RECORDS'] = len(db)
    log['REPERTOIRES'] = db['repertoire_id'].nunique() if 'repertoire_id' in db.columns else 0
    log['END'] = 'ImportRepertoire'
    printLog(log)

    return out_handle.name


def importAIRR(db_files, **kwargs):
    """
    Imports clone files into a MiAIRR table

    Arguments:
      db_files : list of clone files and/or directories.
      kwargs : arguments passed to importRepertoire.

    Returns:
      str : output file name.
    """
    return importRepertoire(db_files, out_label='airr', ireceptor=False, **kwargs)


def importIReceptor(db_files, **kwargs):
    """
    Imports clone files into an iReceptor table

    Arguments:
      db_files : list of clone files and/or directories.
      kwargs : arguments passed to importRepertoire.

    Returns:
      str : output file name.
    """
    return importRepertoire(db_files, out_label='ireceptor', ireceptor=True, **kwargs)


def getArgParser():
    """
    Defines the ArgumentParser

    Arguments:
      None

    Returns:
      an ArgumentParser object
    """
    # Define input and output field help message
    fields = dedent(
             '''
             output files:
                 airr
                     MiAIRR formatted repertoire table.
                 ireceptor
                     MiAIRR table without the repertoire, processing and LymphoSeq
                     derived fields.

             input files:
                 ImmunoSEQ v1-v3, IR-SEQ and MiXCR tab delimited clone files,
                 optionally gzip compressed. Directories are searched for files
                 ending in .tsv, .txt or .tsv.gz.

             output fields:
                 the 144 MiAIRR fields plus repertoire_id, reading_frame,
                 v_family, d_family, j_family and duplicate_frequency.
             ''')

    # Define ArgumentParser
    parser = ArgumentParser(description=__doc__, epilog=fields,
                            formatter_class=CommonHelpFormatter, add_help=False)
    group_help = parser.add_argument_group('help')
    group_help.add_argument('--version', action='version',
                            version='%(prog)s:' + ' %s-%s' %(__version__, __date__))
    group_help.add_argument('-h', '--help', action='help', help='show this help message and exit')
    subparsers = parser.add_subparsers(title='subcommands', dest='command', metavar='',
                                       help='Output format')
    subparsers.required = True

    # Define parent parsers
    default_parent = getCommonArgParser(multiproc=True)
    import_parent = ArgumentParser(add_help=False)
    group_import = import_parent.add_argument_group('import arguments')
    group_import.add_argument('-r', '--recursive', action='store_true', dest='recursive',
                              help='If specified, search input directories recursively.')

    # Subparser to write MiAIRR files
    parser_airr = subparsers.add_parser('airr', parents=[default_parent, import_parent],
                                        formatter_class=CommonHelpFormatter, add_help=False,
                                        help='Imports clone files into a MiAIRR table.',
                                        description='Imports clone files into a MiAIRR table.')
    parser_airr.set_defaults(func=importAIRR)

    # Subparser to write iReceptor files
    parser_ireceptor = subparsers.add_parser('ireceptor', parents=[default_parent, import_parent],
                                             formatter_class=CommonHelpFormatter, add_help=False,
                                             help='Imports clone files into an iReceptor table.',
                                             description='Imports clone files into an iReceptor table.')
    parser_ireceptor.set_defaults(func=importIReceptor)

    return parser


if __name__ == '__main__':
    """
    Parses command line arguments and calls main function
    """
    # Parse arguments
    parser = getArgParser()
    checkArgs(parser)
    args = parser.parse_args()
    args_dict = parseCommonArgs(args)

    # Clean arguments dictionary
    del args_dict['command']
    del args_dict['func']

    # Call main function
    args.func(**args_dict)
