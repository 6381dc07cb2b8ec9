"""
Commandline helper functions
"""
# Info
__author__ = 'LymphoSeq Development Team'
from lymphoseq import __version__, __date__

# Imports
import os
import sys
from argparse import ArgumentParser, ArgumentDefaultsHelpFormatter, RawDescriptionHelpFormatter

# LymphoSeq imports
from lymphoseq.Defaults import default_out_args


class CommonHelpFormatter(RawDescriptionHelpFormatter, ArgumentDefaultsHelpFormatter):
    """
    Custom argparse.HelpFormatter
    """
    # Only print defaults for arguments with a meaningful default
    def _get_help_string(self, action):
        help = action.help
        if action.default is None or action.default is False:
            return help
        return super(CommonHelpFormatter, self)._get_help_string(action)


def getCommonArgParser(db_in=True, out_file=True, schema=True, multiproc=False):
    """
    Defines an ArgumentParser object with common arguments

    Arguments:
      db_in : if True include the input file argument.
      out_file : if True include the explicit output file argument.
      schema : if True include the reference schema argument.
      multiproc : if True include the multiprocessing argument.

    Returns:
      argparse.ArgumentParser : parser holding the common arguments.
    """
    parser = ArgumentParser(add_help=False, formatter_class=CommonHelpFormatter)
    group = parser.add_argument_group('standard arguments')

    # Input arguments
    if db_in:
        group.add_argument('-d', nargs='+', action='store', dest='db_files', required=True,
                           help='A list of tab delimited repertoire files or directories.')
    # Output arguments
    if out_file:
        group.add_argument('-o', action='store', dest='out_file', default=None,
                           help='''Explicit output file name. Note, this argument cannot be used
                                with the --outdir or --outname arguments. If unspecified, then
                                the output filename will be based on the first input.''')
    group.add_argument('--outdir', action='store', dest='out_dir', default=None,
                       help='''Specify to changes the output directory to the location specified.
                            The input file directory is used if this is not specified.''')
    group.add_argument('--outname', action='store', dest='out_name', default=None,
                       help='''Changes the prefix of the successfully processed output file
                            to the string specified.''')
    # Reference schema
    if schema:
        group.add_argument('--schema', action='store', dest='schema_file', default=None,
                           help='''Tab delimited file with name and type columns defining
                                the reference fields. If unspecified, the MiAIRR schema
                                packaged with lymphoseq is used.''')
    # Multiprocessing
    if multiproc:
        group.add_argument('--nproc', action='store', dest='nproc', type=int, default=1,
                           help='The number of simultaneous computational processes to execute.')

    return parser


def parseCommonArgs(args):
    """
    Checks common arguments from an ArgumentParser and builds the argument dictionary

    Arguments:
      args : argparse.Namespace object from ArgumentParser.parse_args().

    Returns:
      dict : dictionary of arguments with the output arguments in the out_args entry.
    """
    args_dict = args.__dict__.copy()

    # Verify output arguments
    if args_dict.get('out_file') and (args_dict.get('out_dir') or args_dict.get('out_name')):
        sys.exit('ERROR:  The -o argument cannot be specified with the --outdir or --outname arguments.')
    if args_dict.get('schema_file') and not os.path.isfile(args_dict['schema_file']):
        sys.exit('ERROR:  Schema file %s does not exist.' % args_dict['schema_file'])

    # Create output directory
    if args_dict.get('out_dir') and not os.path.exists(args_dict['out_dir']):
        try:
            os.mkdir(args_dict['out_dir'])
        except OSError:
            sys.exit('ERROR:  Output directory %s cannot be created.' % args_dict['out_dir'])

    # Redefine common output options as out_args dictionary
    out_args = {k: args_dict.pop(k, None) for k in default_out_args}
    args_dict['out_args'] = out_args

    return args_dict


def checkArgs(parser):
    """
    Prints the help and exits if no arguments were specified

    Arguments:
      parser : argparse.ArgumentParser object.

    Returns:
      None
    """
    if len(sys.argv) == 1:
        parser.print_help()
        sys.exit(1)
