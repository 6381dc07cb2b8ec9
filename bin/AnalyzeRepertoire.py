#!/usr/bin/env python3
"""
Performs analyses on MiAIRR repertoire tables
"""
# Info
__author__ = 'LymphoSeq Development Team'
from lymphoseq import __version__, __date__

# Imports
import os
from argparse import ArgumentParser
from collections import OrderedDict
from textwrap import dedent
from Bio import AlignIO

# Presto and LymphoSeq imports
from presto.IO import getOutputHandle, printLog
from lymphoseq.Defaults import choices_seq_type, default_align_distance, default_edit_distance, \
                               default_fasta_names, default_kmer, default_locus, \
                               default_muscle_exec, default_out_args
from lymphoseq.Commandline import CommonHelpFormatter, checkArgs, getCommonArgParser, parseCommonArgs
from lymphoseq.Analysis import alignSeq, clonalRelatedness, countKmer, geneFreq, productiveSeq, \
                               searchSeq, topSeqs
from lymphoseq.IO import exportFasta, readImmunoSeq, writeRepertoire
from lymphoseq.Schema import loadSchema


def loadTable(db_files, schema_file=None):
    """
    Reads repertoire tables

    Arguments:
      db_files : list of repertoire files.
      schema_file : reference schema file. If None, use the packaged MiAIRR schema.

    Returns:
      pandas.DataFrame : records of all input files.
    """
    return readImmunoSeq(db_files, schema=loadSchema(schema_file))


def openOutput(db_files, out_file, out_label, out_args, out_type='tsv'):
    """
    Opens the output file of an analysis

    Arguments:
      db_files : list of input files.
      out_file : output file name. Automatically generated from the first input if None.
      out_label : label added to generated output file names.
      out_args : common output argument dictionary from parseCommonArgs.
      out_type : extension of generated output file names.

    Returns:
      file : open output handle.
    """
    if out_file is not None:
        return open(out_file, 'w')
    return getOutputHandle(os.path.normpath(db_files[0]), out_label=out_label,
                           out_dir=out_args['out_dir'], out_name=out_args['out_name'],
                           out_type=out_type)


def writeResult(db, db_files, out_file, out_label, out_args):
    """
    Writes an analysis result table and logs the output

    Arguments:
      db : pandas.DataFrame with the result.
      db_files : list of input files.
      out_file : output file name. Automatically generated from the first input if None.
      out_label : label added to generated output file names.
      out_args : common output argument dictionary from parseCommonArgs.

    Returns:
      str : output file name.
    """
    with openOutput(db_files, out_file, out_label, out_args) as handle:
        writeRepertoire(db, handle)

    log = OrderedDict()
    log['OUTPUT'] = os.path.basename(handle.name)
    log['RECORDS'] = len(db)
    log['END'] = 'AnalyzeRepertoire'
    printLog(log)

    return handle.name


def analyzeProductive(db_files, aggregate='junction_aa', out_file=None, schema_file=None,
                      out_args=default_out_args):
    """
    Writes productive records aggregated by junction or junction_aa
    """
    db = productiveSeq(loadTable(db_files, schema_file), aggregate=aggregate)
    return writeResult(db, db_files, out_file, 'productive', out_args)


def analyzeTop(db_files, top=1, out_file=None, schema_file=None, out_args=default_out_args):
    """
    Writes the most frequent records of each repertoire
    """
    db = topSeqs(loadTable(db_files, schema_file), top=top)
    return writeResult(db, db_files, out_file, 'top', out_args)


def analyzeGenes(db_files, locus=default_locus, family=False, out_file=None, schema_file=None,
                 out_args=default_out_args):
    """
    Writes gene usage frequencies
    """
    db = geneFreq(loadTable(db_files, schema_file), locus=locus, family=family)
    return writeResult(db, db_files, out_file, 'genes', out_args)


def analyzeKmer(db_files, k=default_kmer, separate=True, out_file=None, schema_file=None,
                out_args=default_out_args):
    """
    Writes junction k-mer counts
    """
    db = countKmer(loadTable(db_files, schema_file), k=k, separate=separate)
    return writeResult(db, db_files, out_file, 'kmer', out_args)


def analyzeSearch(db_files, sequences, seq_type='junction_aa', edit_distance=0, match='global',
                  out_file=None, schema_file=None, out_args=default_out_args):
    """
    Writes records similar to query sequences
    """
    db = searchSeq(loadTable(db_files, schema_file), sequences, seq_type=seq_type,
                   edit_distance=edit_distance, match=match)
    return writeResult(db, db_files, out_file, 'search', out_args)


def analyzeRelatedness(db_files, edit_distance=default_edit_distance, out_file=None,
                       schema_file=None, out_args=default_out_args):
    """
    Writes the clonal relatedness of each repertoire
    """
    db = clonalRelatedness(loadTable(db_files, schema_file), edit_distance=edit_distance)
    return writeResult(db, db_files, out_file, 'relatedness', out_args)


def analyzeFasta(db_files, seq_type='junction', names=default_fasta_names, schema_file=None,
                 out_args=default_out_args):
    """
    Writes one fasta file per repertoire
    """
    out_dir = out_args['out_dir'] if out_args['out_dir'] is not None \
              else os.path.dirname(os.path.abspath(db_files[0]))
    return exportFasta(loadTable(db_files, schema_file), seq_type=seq_type, names=names,
                       out_dir=out_dir)


def analyzeAlign(db_files, repertoire_ids=None, seq_type='junction', sequences=None,
                 edit_distance=default_align_distance, muscle_exec=default_muscle_exec,
                 out_file=None, schema_file=None, out_args=default_out_args):
    """
    Writes a multiple sequence alignment of repertoire sequences
    """
    alignment = alignSeq(loadTable(db_files, schema_file), repertoire_ids=repertoire_ids,
                         seq_type=seq_type, sequence_list=sequences,
                         edit_distance=edit_distance, muscle_exec=muscle_exec)
    with openOutput(db_files, out_file, 'align', out_args, out_type='fasta') as handle:
        AlignIO.write(alignment, handle, 'fasta')

    log = OrderedDict()
    log['OUTPUT'] = os.path.basename(handle.name)
    log['SEQUENCES'] = len(alignment)
    log['END'] = 'AnalyzeRepertoire'
    printLog(log)

    return handle.name


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
                 productive
                     productive records aggregated by junction or junction_aa.
                 top
                     most frequent records of each repertoire.
                 genes
                     gene usage table.
                 kmer
                     k-mer count table.
                 search
                     records similar to the searched sequences.
                 relatedness
                     clonal relatedness of each repertoire.
                 align
                     aligned sequences in fasta format.
                 <repertoire_id>.fasta
                     sequences of each repertoire output from the fasta subcommand.

             required fields:
                 repertoire_id, junction, junction_aa, duplicate_count,
                 duplicate_frequency, productive

             optional fields:
                 v_call, d_call, j_call, v_family, d_family, j_family

             output fields:
                 gene_type, gene_name, gene_frequency, kmer, count,
                 searched_sequence, edit_distance, clonalRelatedness
             ''')

    # Define ArgumentParser
    parser = ArgumentParser(description=__doc__, epilog=fields,
                            formatter_class=CommonHelpFormatter, add_help=False)
    group_help = parser.add_argument_group('help')
    group_help.add_argument('--version', action='version',
                            version='%(prog)s:' + ' %s-%s' %(__version__, __date__))
    group_help.add_argument('-h', '--help', action='help', help='show this help message and exit')
    subparsers = parser.add_subparsers(title='subcommands', dest='command', metavar='',
                                       help='Repertoire analysis')
    subparsers.required = True

    # Define parent parsers
    default_parent = getCommonArgParser()
    fasta_parent = getCommonArgParser(out_file=False)

    # Subparser to aggregate productive sequences
    parser_productive = subparsers.add_parser('productive', parents=[default_parent],
                                              formatter_class=CommonHelpFormatter, add_help=False,
                                              help='Aggregates productive sequences.',
                                              description='Aggregates productive sequences.')
    group_productive = parser_productive.add_argument_group('aggregation arguments')
    group_productive.add_argument('--aggregate', action='store', dest='aggregate',
                                  choices=choices_seq_type, default='junction_aa',
                                  help='The field used to aggregate duplicate sequences.')
    parser_productive.set_defaults(func=analyzeProductive)

    # Subparser to select top sequences
    parser_top = subparsers.add_parser('top', parents=[default_parent],
                                       formatter_class=CommonHelpFormatter, add_help=False,
                                       help='Selects the most frequent sequences.',
                                       description='Selects the most frequent sequences of each repertoire.')
    group_top = parser_top.add_argument_group('selection arguments')
    group_top.add_argument('-n', action='store', dest='top', type=int, default=1,
                           help='The number of sequences to select from each repertoire.')
    parser_top.set_defaults(func=analyzeTop)

    # Subparser to calculate gene frequencies
    parser_genes = subparsers.add_parser('genes', parents=[default_parent],
                                         formatter_class=CommonHelpFormatter, add_help=False,
                                         help='Calculates gene usage frequencies.',
                                         description='Calculates gene usage frequencies.')
    group_genes = parser_genes.add_argument_group('gene usage arguments')
    group_genes.add_argument('--locus', action='store', dest='locus', default=default_locus,
                             help='Gene segments to count; any combination of V, D and J.')
    group_genes.add_argument('--family', action='store_true', dest='family',
                             help='If specified, count gene families instead of gene names.')
    parser_genes.set_defaults(func=analyzeGenes)

    # Subparser to count k-mers
    parser_kmer = subparsers.add_parser('kmer', parents=[default_parent],
                                        formatter_class=CommonHelpFormatter, add_help=False,
                                        help='Counts junction k-mers.',
                                        description='Counts junction k-mers.')
    group_kmer = parser_kmer.add_argument_group('k-mer arguments')
    group_kmer.add_argument('-k', action='store', dest='k', type=int, default=default_kmer,
                            help='The k-mer length.')
    group_kmer.add_argument('--combine', action='store_false', dest='separate',
                            help='If specified, count k-mers across all repertoires.')
    parser_kmer.set_defaults(func=analyzeKmer)

    # Subparser to search sequences
    parser_search = subparsers.add_parser('search', parents=[default_parent],
                                          formatter_class=CommonHelpFormatter, add_help=False,
                                          help='Finds sequences similar to query sequences.',
                                          description='Finds sequences similar to query sequences.')
    group_search = parser_search.add_argument_group('search arguments')
    group_search.add_argument('--seq', nargs='+', action='store', dest='sequences', required=True,
                              help='The query sequences.')
    group_search.add_argument('--type', action='store', dest='seq_type',
                              choices=choices_seq_type, default='junction_aa',
                              help='The field to search.')
    group_search.add_argument('--ed', action='store', dest='edit_distance', type=int, default=0,
                              help='The maximum edit distance to a query.')
    group_search.add_argument('--match', action='store', dest='match',
                              choices=('global', 'partial'), default='global',
                              help='''Specify global to compare whole sequences or partial to
                                   compare queries to the best matching substring.''')
    parser_search.set_defaults(func=analyzeSearch)

    # Subparser to calculate clonal relatedness
    parser_related = subparsers.add_parser('relatedness', parents=[default_parent],
                                           formatter_class=CommonHelpFormatter, add_help=False,
                                           help='Calculates clonal relatedness.',
                                           description='Calculates clonal relatedness.')
    group_related = parser_related.add_argument_group('relatedness arguments')
    group_related.add_argument('--ed', action='store', dest='edit_distance', type=int,
                               default=default_edit_distance,
                               help='The maximum edit distance to the top clone.')
    parser_related.set_defaults(func=analyzeRelatedness)

    # Subparser to export fasta files
    parser_fasta = subparsers.add_parser('fasta', parents=[fasta_parent],
                                         formatter_class=CommonHelpFormatter, add_help=False,
                                         help='Writes one fasta file per repertoire.',
                                         description='Writes one fasta file per repertoire.')
    group_fasta = parser_fasta.add_argument_group('fasta arguments')
    group_fasta.add_argument('--type', action='store', dest='seq_type',
                             choices=choices_seq_type, default='junction',
                             help='The field to export.')
    group_fasta.add_argument('--names', nargs='+', action='store', dest='names',
                             default=list(default_fasta_names),
                             help='Fields joined to build the sequence names.')
    parser_fasta.set_defaults(func=analyzeFasta)

    # Subparser to align sequences
    parser_align = subparsers.add_parser('align', parents=[default_parent],
                                         formatter_class=CommonHelpFormatter, add_help=False,
                                         help='Aligns sequences with MUSCLE.',
                                         description='Aligns sequences with MUSCLE.')
    group_align = parser_align.add_argument_group('alignment arguments')
    group_align.add_argument('--rep', nargs='+', action='store', dest='repertoire_ids', default=None,
                             help='Repertoires to align. If unspecified, all repertoires are used.')
    group_align.add_argument('--type', action='store', dest='seq_type',
                             choices=choices_seq_type, default='junction',
                             help='The field to align.')
    group_align.add_argument('--seq', nargs='+', action='store', dest='sequences', default=None,
                             help='''If specified, only sequences within the edit distance
                                  of a query are aligned.''')
    group_align.add_argument('--ed', action='store', dest='edit_distance', type=int,
                             default=default_align_distance,
                             help='The maximum edit distance to a query.')
    group_align.add_argument('--exec', action='store', dest='muscle_exec',
                             default=default_muscle_exec,
                             help='The name or location of the MUSCLE executable.')
    parser_align.set_defaults(func=analyzeAlign)

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

    # Check arguments
    if args.command == 'genes' and any(c not in 'VDJ' for c in args_dict['locus'].upper()):
        parser.error('The locus (--locus) must be a combination of the letters V, D and J')
    if args.command == 'kmer' and args_dict['k'] < 1:
        parser.error('The k-mer length (-k) must be a positive integer')

    # Clean arguments dictionary
    del args_dict['command']
    del args_dict['func']

    # Call main function
    args.func(**args_dict)
