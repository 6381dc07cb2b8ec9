"""
File I/O and batch import functions
"""
# Info
__author__ = 'LymphoSeq Development Team'
from lymphoseq import __version__, __date__

# Imports
import multiprocessing as mp
import os
import zlib
import pandas as pd
from collections import OrderedDict
from time import time
from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

# Presto and LymphoSeq imports
from presto.IO import printLog, printProgress, printWarning
from lymphoseq.Analysis import productiveSeq
from lymphoseq.Defaults import choices_seq_type, default_fasta_names, default_file_types, \
                               default_frequency_field, default_id_field
from lymphoseq.Parsers import getRepertoireId, parseRepertoire, readCloneFile
from lymphoseq.Schema import RepertoireSchema, VendorSchema, loadSchema


def findRepertoireFiles(path, recursive=False, file_types=default_file_types):
    """
    Resolves an input specification into a list of clone files

    Arguments:
      path : a file, a directory or a list of files and/or directories.
      recursive : if True search directories recursively.
      file_types : file name suffixes to collect from directories.

    Returns:
      list : existing, non-empty clone files without duplicates.
    """
    paths = [path] if isinstance(path, str) else list(path)

    # Expand directories
    candidates = []
    for p in paths:
        if os.path.isdir(p):
            found = []
            if recursive:
                for root, dirs, names in os.walk(p):
                    found.extend([os.path.join(root, f) for f in names])
            else:
                found.extend([os.path.join(p, f) for f in os.listdir(p) \
                              if os.path.isfile(os.path.join(p, f))])
            candidates.extend(sorted(f for f in found if f.endswith(file_types)))
        else:
            candidates.append(p)

    # Remove duplicates
    files = []
    for f in candidates:
        if f not in files:  files.append(f)

    # Remove missing and empty files
    missing = [f for f in files if not os.path.isfile(f)]
    empty = [f for f in files if f not in missing and os.path.getsize(f) == 0]
    if missing:
        printWarning('The following files do not exist and will be ignored: %s' % ', '.join(missing))
    if empty:
        printWarning('One or more of the files you are trying to import has no sequences '
                     'and will be ignored: %s' % ', '.join(empty))

    return [f for f in files if f not in missing and f not in empty]


def readRepertoireFile(clone_file, schema, mapping=VendorSchema):
    """
    Imports a single clone file as MiAIRR records

    Arguments:
      clone_file : path to the clone file.
      schema : lymphoseq.Schema.RepertoireSchema.
      mapping : vendor field mapping class.

    Returns:
      pandas.DataFrame : annotated MiAIRR records; None if the file could not be imported.
    """
    try:
        data = readCloneFile(clone_file, schema, mapping)
        db = parseRepertoire(data, getRepertoireId(clone_file), schema, mapping)
    except (OSError, ValueError, zlib.error) as e:
        printWarning('File %s could not be imported and will be ignored. %s' % (clone_file, e))
        return None

    return db


# Pool worker for readRepertoireFile
def _readRepertoireTask(args):
    return readRepertoireFile(*args)


def readImmunoSeq(path, recursive=False, schema=None, nproc=1):
    """
    Imports clone files from ImmunoSEQ, IR-SEQ or MiXCR into a single MiAIRR table

    Arguments:
      path : a file, a directory or a list of files and/or directories.
      recursive : if True search directories recursively.
      schema : lymphoseq.Schema.RepertoireSchema. If None, load the default schema.
      nproc : number of processes used to import files.

    Returns:
      pandas.DataFrame : MiAIRR records of all files in file and row order.
    """
    if schema is None:
        schema = loadSchema()
    files = findRepertoireFiles(path, recursive=recursive)

    log = OrderedDict()
    log['START'] = 'ReadImmunoSeq'
    log['FILES'] = len(files)
    log['NPROC'] = nproc
    printLog(log)

    # Import files
    start_time = time()
    results = []
    tasks = [(f, schema) for f in files]
    if nproc > 1 and len(files) > 1:
        with mp.Pool(nproc) as pool:
            for i, db in enumerate(pool.imap(_readRepertoireTask, tasks)):
                printProgress(i, len(files), 0.05, start_time)
                results.append(db)
    else:
        for i, task in enumerate(tasks):
            printProgress(i, len(files), 0.05, start_time)
            results.append(_readRepertoireTask(task))
    if files:
        printProgress(len(files), len(files), 0.05, start_time)

    # Concatenate results
    frames = [x for x in results if x is not None]
    if frames:
        db = pd.concat(frames, ignore_index=True, sort=False)
    else:
        db = pd.DataFrame(columns=schema.fields)

    log = OrderedDict()
    log['PASS'] = len(frames)
    log['FAIL'] = len(results) - len(frames)
    log['RECORDS'] = len(db)
    log['END'] = 'ReadImmunoSeq'
    printLog(log)

    return db


def writeRepertoire(data, out_file, fields=None):
    """
    Writes records to an AIRR formatted tab-delimited file

    Arguments:
      data : pandas.DataFrame of records.
      out_file : output file name.
      fields : ordered list of output fields. If None, write every column of data.

    Returns:
      str : output file name.
    """
    db = data.copy() if fields is None else data.reindex(columns=fields)
    for f in db.columns:
        if pd.api.types.is_bool_dtype(db[f].dtype):
            db[f] = db[f].map({True: 'T', False: 'F'})
    db.to_csv(out_file, sep='\t', index=False, na_rep='')

    return out_file


def iReceptorFormat(data, schema=None):
    """
    Returns the iReceptor view of a MiAIRR table

    Arguments:
      data : pandas.DataFrame of MiAIRR records.
      schema : lymphoseq.Schema.RepertoireSchema providing the excluded fields.
               If None, use the default exclusions.

    Returns:
      pandas.DataFrame : records without repertoire, processing and derived LymphoSeq fields.
    """
    exclude = schema.ireceptor_exclude if schema is not None else RepertoireSchema.ireceptor_exclude
    return data.drop(columns=[f for f in exclude if f in data.columns])


def exportFasta(data, seq_type='junction', names=default_fasta_names, out_dir=None):
    """
    Writes the sequences of each repertoire to a fasta file

    Arguments:
      data : pandas.DataFrame of MiAIRR records.
      seq_type : sequence field to export; one of 'junction' or 'junction_aa'.
      names : fields joined with '_' to build sequence names. The name 'rank'
              is the order of the sequence by descending duplicate_frequency.
      out_dir : output directory. If None, use the current directory.

    Returns:
      list : output file names.
    """
    if seq_type not in choices_seq_type:
        raise ValueError('Sequence type must be one of %s' % ', '.join(choices_seq_type))
    unknown = [n for n in names if n != 'rank' and n not in data.columns]
    if unknown:
        raise ValueError('Fields %s are not present in the table' % ', '.join(unknown))

    log = OrderedDict()
    log['START'] = 'ExportFasta'
    log['SEQ_TYPE'] = seq_type
    log['NAMES'] = ','.join(names)
    printLog(log)

    if seq_type == 'junction_aa':
        data = productiveSeq(data, aggregate='junction_aa')
    db = data.sort_values([default_id_field, default_frequency_field],
                          ascending=[True, False], kind='mergesort')
    db = db.assign(rank=db.groupby(default_id_field).cumcount() + 1)

    if out_dir is None:
        out_dir = os.getcwd()
    os.makedirs(out_dir, exist_ok=True)

    out_files = []
    rec_count = 0
    for rep_id, group in db.groupby(default_id_field, sort=True):
        records = []
        for row in group.to_dict('records'):
            seq = row[seq_type]
            if not isinstance(seq, str):  continue
            name = '_'.join(str(row[n]) for n in names)
            records.append(SeqRecord(Seq(seq), id=name, name=name, description=''))
        out_file = os.path.join(out_dir, '%s.fasta' % rep_id)
        with open(out_file, 'w') as handle:
            SeqIO.write(records, handle, 'fasta')
        out_files.append(out_file)
        rec_count += len(records)

    log = OrderedDict()
    log['OUTPUT'] = out_dir
    log['FILES'] = len(out_files)
    log['RECORDS'] = rec_count
    log['END'] = 'ExportFasta'
    printLog(log)

    return out_files
