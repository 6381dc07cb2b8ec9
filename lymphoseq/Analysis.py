"""
Repertoire analysis functions
"""
# Info
__author__ = 'LymphoSeq Development Team'
from lymphoseq import __version__, __date__

# Imports
import os
import pandas as pd
from collections import Counter, OrderedDict
from tempfile import TemporaryDirectory
from time import time
from Bio import AlignIO, SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord
from Levenshtein import distance

# Presto and LymphoSeq imports
from presto.IO import printLog, printMessage, printWarning
from lymphoseq.Annotation import calcFrequency
from lymphoseq.Applications import runMuscle
from lymphoseq.Defaults import choices_seq_type, default_align_distance, default_count_field, \
                               default_edit_distance, default_frequency_field, default_id_field, \
                               default_kmer, default_locus, default_muscle_exec, default_seq_field, \
                               default_unresolved
from lymphoseq.Schema import parseLogical

# Gene segments in output order
gene_segments = ('V', 'D', 'J')


def _checkSeqType(seq_type):
    if seq_type not in choices_seq_type:
        raise ValueError('Sequence type must be one of %s, not %s' \
                         % (', '.join(choices_seq_type), seq_type))


def _asList(values):
    return [values] if isinstance(values, str) else list(values)


def isProductive(values):
    """
    Converts productive flags to a boolean mask

    Arguments:
      values : pandas.Series of productive flags.

    Returns:
      pandas.Series : True where the flag is true; False for false or null flags.
    """
    return values.map(parseLogical).eq(True)


def partialDistance(query, target):
    """
    Calculates the edit distance of a query to its best matching substring of a target

    Arguments:
      query : query sequence.
      target : sequence searched for the query.

    Returns:
      int : minimum number of edits to transform query into any substring of target.
    """
    # Approximate substring matching with free leading and trailing gaps in target
    prev = [0] * (len(target) + 1)
    for i, q in enumerate(query, start=1):
        row = [i]
        for j, t in enumerate(target, start=1):
            row.append(min(prev[j] + 1, row[j - 1] + 1, prev[j - 1] + (q != t)))
        prev = row

    return min(prev)


def productiveSeq(data, aggregate='junction_aa'):
    """
    Removes unproductive records and aggregates duplicate sequences

    Arguments:
      data : pandas.DataFrame of MiAIRR records.
      aggregate : field used to collapse records; one of 'junction' or 'junction_aa'.

    Returns:
      pandas.DataFrame : one record per distinct aggregate value within each repertoire,
                         with summed duplicate_count and recomputed duplicate_frequency.
                         Other fields hold the first non-null value of the group.
    """
    _checkSeqType(aggregate)

    mask = isProductive(data['productive']) & data[aggregate].notna()
    db = data.loc[mask]
    if db.empty:
        return db.reset_index(drop=True)

    group = [default_id_field, aggregate] if default_id_field in db.columns else [aggregate]
    grouped = db.groupby(group, sort=False)
    result = grouped.first()
    result[default_count_field] = grouped[default_count_field].sum()
    result = result.reset_index()[list(data.columns)]

    if default_id_field in result.columns:
        result[default_frequency_field] = result.groupby(default_id_field)[default_count_field] \
                                                .transform(calcFrequency)
    else:
        result[default_frequency_field] = calcFrequency(result[default_count_field])

    return result


def topSeqs(data, top=1):
    """
    Selects the most frequent records of each repertoire

    Arguments:
      data : pandas.DataFrame of MiAIRR records.
      top : number of records to keep per repertoire.

    Returns:
      pandas.DataFrame : records ordered by repertoire and decreasing duplicate_frequency.
    """
    db = data.sort_values([default_id_field, default_frequency_field],
                          ascending=[True, False], kind='mergesort')
    db = db.groupby(default_id_field, sort=False).head(top)

    return db.reset_index(drop=True)


def geneFreq(data, locus=default_locus, family=False):
    """
    Calculates gene usage frequencies

    Arguments:
      data : pandas.DataFrame of MiAIRR records.
      locus : gene segments to count; any combination of the letters V, D and J.
      family : if True count gene families instead of gene names.

    Returns:
      pandas.DataFrame : repertoire_id, gene_type, gene_name, duplicate_count and
                         gene_frequency, where gene_frequency sums to 1 within each
                         repertoire and gene type.
    """
    segments = locus.upper()
    if not segments or any(c not in gene_segments for c in segments):
        raise ValueError('Locus must be a combination of the letters V, D and J, not %s' % locus)

    frames = []
    for seg in gene_segments:
        if seg not in segments:  continue
        field = '%s_family' % seg.lower() if family else '%s_call' % seg.lower()
        names = data[field].where(data[field].notna(), default_unresolved)
        frames.append(pd.DataFrame({default_id_field: data[default_id_field],
                                    'gene_type': seg,
                                    'gene_name': names,
                                    default_count_field: data[default_count_field]}))
    db = pd.concat(frames, ignore_index=True)

    db = db.groupby([default_id_field, 'gene_type', 'gene_name'], sort=True)[default_count_field] \
           .sum().reset_index()
    totals = db.groupby([default_id_field, 'gene_type'])[default_count_field].transform('sum')
    db['gene_frequency'] = (db[default_count_field] / totals).astype(float)

    return db


def countKmer(data, k=default_kmer, separate=True):
    """
    Counts k-mers in junction sequences

    Arguments:
      data : pandas.DataFrame with a junction column.
      k : k-mer length.
      separate : if True and a repertoire_id column exists, count each repertoire separately.

    Returns:
      pandas.DataFrame : kmer and count columns, preceded by repertoire_id when counted
                         separately; k-mers are sorted within each repertoire.
    """
    if k < 1:
        raise ValueError('k must be a positive integer, not %s' % k)

    by_repertoire = separate and default_id_field in data.columns
    groups = data.groupby(default_id_field, sort=True) if by_repertoire else [(None, data)]

    rows = []
    for rep_id, group in groups:
        counter = Counter()
        for seq in group[default_seq_field]:
            if not isinstance(seq, str):  continue
            counter.update(seq[i:i + k] for i in range(len(seq) - k + 1))
        for kmer, n in sorted(counter.items()):
            rows.append((rep_id, kmer, n) if by_repertoire else (kmer, n))

    columns = [default_id_field, 'kmer', 'count'] if by_repertoire else ['kmer', 'count']
    return pd.DataFrame(rows, columns=columns)


def searchSeq(data, sequence, seq_type='junction_aa', edit_distance=0, match='global'):
    """
    Finds records similar to query sequences

    Arguments:
      data : pandas.DataFrame of MiAIRR records.
      sequence : a query sequence or a list of query sequences.
      seq_type : field to search; one of 'junction' or 'junction_aa'.
      edit_distance : maximum Levenshtein distance to a query.
      match : 'global' compares whole sequences; 'partial' compares the query
              to the best matching substring of each sequence.

    Returns:
      pandas.DataFrame : matching records with searched_sequence and edit_distance
                         columns, ordered by query then record order.
    """
    _checkSeqType(seq_type)
    if match not in ('global', 'partial'):
        raise ValueError('Match must be one of global or partial, not %s' % match)

    values = data[seq_type]
    frames = []
    for query in _asList(sequence):
        if match == 'global':
            dist = [distance(query, s, score_cutoff=edit_distance) if isinstance(s, str) else None \
                    for s in values]
        else:
            dist = [partialDistance(query, s) if isinstance(s, str) else None for s in values]
        keep = [d is not None and d <= edit_distance for d in dist]
        if not any(keep):  continue
        hits = data.loc[keep].copy()
        hits['searched_sequence'] = query
        hits['edit_distance'] = [d for d, x in zip(dist, keep) if x]
        frames.append(hits)

    if not frames:
        printWarning('No sequences within edit distance %i of the searched sequences.' % edit_distance)
        return pd.DataFrame(columns=list(data.columns) + ['searched_sequence', 'edit_distance'])

    return pd.concat(frames, ignore_index=True)


def clonalRelatedness(data, edit_distance=default_edit_distance):
    """
    Calculates the clonal relatedness of each repertoire

    Arguments:
      data : pandas.DataFrame of MiAIRR records.
      edit_distance : maximum Levenshtein distance to the top clone.

    Returns:
      pandas.DataFrame : repertoire_id and clonalRelatedness, the proportion of junction
                         sequences within edit_distance of the most frequent junction.
    """
    rows = []
    for rep_id, group in data.groupby(default_id_field, sort=True):
        group = group.loc[group[default_seq_field].notna()]
        if group.empty:
            rows.append((rep_id, float('nan')))
            continue
        group = group.sort_values(default_frequency_field, ascending=False, kind='mergesort')
        top = group[default_seq_field].iloc[0]
        related = sum(distance(top, s, score_cutoff=edit_distance) <= edit_distance \
                      for s in group[default_seq_field])
        rows.append((rep_id, related / len(group)))

    return pd.DataFrame(rows, columns=[default_id_field, 'clonalRelatedness'])


def alignSeq(data, repertoire_ids=None, seq_type='junction', sequence_list=None,
             edit_distance=default_align_distance, muscle_exec=default_muscle_exec):
    """
    Builds a multiple sequence alignment with MUSCLE

    Arguments:
      data : pandas.DataFrame of MiAIRR records.
      repertoire_ids : repertoire identifier or list of identifiers to align.
                       If None, use every repertoire.
      seq_type : field to align; one of 'junction' or 'junction_aa'.
      sequence_list : query sequence or list of query sequences. If specified, only
                      sequences within edit_distance of any query are aligned.
      edit_distance : maximum Levenshtein distance to a query.
      muscle_exec : the name or path to the MUSCLE executable.

    Returns:
      Bio.Align.MultipleSeqAlignment : the alignment, with records named
                                       <repertoire_id>_<index>.
    """
    _checkSeqType(seq_type)

    db = data
    if repertoire_ids is not None:
        db = db.loc[db[default_id_field].isin(_asList(repertoire_ids))]
    db = db.loc[db[seq_type].notna()]
    if sequence_list is not None:
        queries = _asList(sequence_list)
        keep = [any(distance(q, s, score_cutoff=edit_distance) <= edit_distance for q in queries) \
                for s in db[seq_type]]
        db = db.loc[keep]

    if len(db) < 2:
        raise ValueError('At least two sequences are required for alignment, found %i' % len(db))

    log = OrderedDict()
    log['START'] = 'AlignSeq'
    log['SEQ_TYPE'] = seq_type
    log['REPERTOIRES'] = db[default_id_field].nunique()
    log['SEQUENCES'] = len(db)
    printLog(log)

    index = db.groupby(default_id_field, sort=False).cumcount() + 1
    records = [SeqRecord(Seq(s), id='%s_%i' % (r, i), name='%s_%i' % (r, i), description='') \
               for s, r, i in zip(db[seq_type], db[default_id_field], index)]

    with TemporaryDirectory() as temp_dir:
        in_file = os.path.join(temp_dir, 'sequences.fasta')
        out_file = os.path.join(temp_dir, 'alignment.fasta')
        with open(in_file, 'w') as handle:
            SeqIO.write(records, handle, 'fasta')
        start_time = time()
        printMessage('Running MUSCLE', start_time=start_time, width=25)
        runMuscle(in_file, out_file, muscle_exec=muscle_exec)
        printMessage('Done', start_time=start_time, end=True, width=25)
        alignment = AlignIO.read(out_file, 'fasta')

    log = OrderedDict()
    log['LENGTH'] = alignment.get_alignment_length()
    log['END'] = 'AlignSeq'
    printLog(log)

    return alignment
