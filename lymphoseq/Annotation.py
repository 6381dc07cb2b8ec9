"""
Repertoire annotation functions
"""

# Info
__author__ = 'LymphoSeq Development Team'
from lymphoseq import __version__, __date__

# Imports
import re
import numpy as np
import pandas as pd

# LymphoSeq imports
from lymphoseq.Defaults import default_count_field, default_in_frame, default_out_frame, \
                               default_unrecognized, default_unresolved

# TCR beta family regular expressions
v_family_regex = re.compile(r'(TRB|TCRB)V\d+')
d_family_regex = re.compile(r'(TRB|TCRB)D\d+')
j_family_regex = re.compile(r'(TRB|TCRB)J\d+')

# Stop codon and multiple call markers
stop_char = '*'
multi_call_char = '/'


def isUnresolved(call):
    """
    Checks whether a gene call is missing or unresolved

    Arguments:
      call : gene call.

    Returns:
      bool : True if call is null or contains the unresolved marker.
    """
    return not isinstance(call, str) or default_unresolved in call


def resolveCall(call):
    """
    Collapses multiple gene calls

    Arguments:
      call : gene call.

    Returns:
      str : 'unresolved' if call holds more than one gene separated by '/';
            otherwise the input call.
    """
    if isinstance(call, str) and multi_call_char in call:
        return default_unresolved
    return call


def parseFamily(call, regex):
    """
    Extracts the gene family from a gene call

    Arguments:
      call : gene call.
      regex : compiled family regular expression.

    Returns:
      str : family name; 'unrecognized' if the call is null, unresolved or does not match.
    """
    if isUnresolved(call):
        return default_unrecognized
    match = regex.search(call)
    return match.group(0) if match else default_unrecognized


def hasStop(seq, seq_aa):
    """
    Checks for stop codons

    Arguments:
      seq : nucleotide sequence.
      seq_aa : amino acid sequence.

    Returns:
      bool : True if either sequence is null or contains a stop codon.
    """
    if not isinstance(seq, str) or not isinstance(seq_aa, str):
        return True
    return stop_char in seq or stop_char in seq_aa


def readingFrame(seq_aa):
    """
    Determines the junction reading frame from the translated sequence

    Arguments:
      seq_aa : amino acid sequence.

    Returns:
      str : 'out-of-frame' if seq_aa contains a stop codon, 'in-frame' if not,
            None if seq_aa is null.
    """
    if not isinstance(seq_aa, str):
        return None
    return default_out_frame if stop_char in seq_aa else default_in_frame


def isCompleteVDJ(v_call, d_call, j_call):
    """
    Checks whether all three gene segments are resolved

    Arguments:
      v_call : V gene call.
      d_call : D gene call.
      j_call : J gene call.

    Returns:
      bool : True if no call is null or unresolved.
    """
    return not any(isUnresolved(x) for x in (v_call, d_call, j_call))


def seqLength(values):
    """
    Calculates sequence lengths

    Arguments:
      values : pandas.Series of sequences.

    Returns:
      pandas.Series : Int64 lengths; null where the sequence is null.
    """
    lengths = [len(x) if isinstance(x, str) else None for x in values]
    return pd.Series(pd.array(lengths, dtype='Int64'), index=values.index)


def calcFrequency(counts):
    """
    Normalizes counts to frequencies

    Arguments:
      counts : pandas.Series of counts.

    Returns:
      pandas.Series : counts divided by their sum; null if the counts sum to zero.
    """
    counts = pd.to_numeric(counts, errors='coerce').astype(float)
    total = counts.sum()
    if total > 0:
        return counts / total
    return pd.Series(np.nan, index=counts.index)


def annotateRepertoire(data):
    """
    Derives annotation fields for the records of one repertoire

    Arguments:
      data : pandas.DataFrame with canonical MiAIRR columns for a single repertoire,
             in the row order of the source file.

    Returns:
      pandas.DataFrame : a copy of data with the sequence_id, junction_length,
                         junction_aa_length, rev_comp, stop_codon, productive,
                         v_call, d_call, j_call, complete_vdj, duplicate_frequency,
                         reading_frame, v_family, d_family and j_family fields set.
    """
    db = data.copy()
    index = db.index

    # Identifiers and lengths
    db['sequence_id'] = pd.array(list(range(1, len(db) + 1)), dtype='Int64')
    db['junction_length'] = seqLength(db['junction'])
    db['junction_aa_length'] = seqLength(db['junction_aa'])

    # Functionality
    stop = [hasStop(s, a) for s, a in zip(db['sequence'], db['sequence_aa'])]
    db['rev_comp'] = pd.Series(False, index=index, dtype=bool)
    db['stop_codon'] = pd.Series(stop, index=index, dtype=bool)
    db['productive'] = ~db['stop_codon']
    db['reading_frame'] = pd.Series([readingFrame(x) for x in db['sequence_aa']],
                                    index=index, dtype=object)

    # Gene calls
    for f in ('v_call', 'd_call', 'j_call'):
        db[f] = pd.Series([resolveCall(x) for x in db[f]], index=index, dtype=object)
    complete = [isCompleteVDJ(v, d, j) for v, d, j in zip(db['v_call'], db['d_call'], db['j_call'])]
    db['complete_vdj'] = pd.Series(complete, index=index, dtype=bool)
    db['v_family'] = db['v_call'].map(lambda x: parseFamily(x, v_family_regex)).astype(object)
    db['d_family'] = db['d_call'].map(lambda x: parseFamily(x, d_family_regex)).astype(object)
    db['j_family'] = db['j_call'].map(lambda x: parseFamily(x, j_family_regex)).astype(object)

    # Abundance
    db['duplicate_frequency'] = calcFrequency(db[default_count_field])

    return db
