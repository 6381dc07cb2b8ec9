"""
Vendor clone file parsing and MiAIRR standardization functions
"""
# Info
__author__ = 'LymphoSeq Development Team'
from lymphoseq import __version__, __date__

# Imports
import os
import pandas as pd
from collections import OrderedDict

# Presto and LymphoSeq imports
from presto.IO import printWarning
from lymphoseq.Annotation import annotateRepertoire, isUnresolved
from lymphoseq.Defaults import default_na_values
from lymphoseq.Schema import SchemaError, VendorSchema, coerceFields

# Nucleotide and amino acid field pairs as (canonical name, legacy name)
sequence_pairs = (('sequence', 'junction'),
                  ('sequence_aa', 'junction_aa'))


def getRepertoireId(clone_file):
    """
    Derives a repertoire identifier from a file name

    Arguments:
      clone_file : path to the clone file.

    Returns:
      str : the file name without directory, compression suffix or extension.
    """
    name = os.path.basename(clone_file)
    if name.endswith('.gz'):
        name = name[:-3]
    return os.path.splitext(name)[0]


def readCloneFile(clone_file, schema, mapping=VendorSchema):
    """
    Reads a tab-delimited clone file

    Arguments:
      clone_file : path to a tab-delimited file, optionally gzip compressed.
      schema : lymphoseq.Schema.RepertoireSchema.
      mapping : vendor field mapping class.

    Returns:
      pandas.DataFrame : canonical and known vendor columns of the file, with
                         canonical columns converted to their schema types.
    """
    known = set(schema.fields).union(mapping.fields())
    data = pd.read_csv(clone_file, sep='\t', dtype=str, keep_default_na=False,
                       na_values=default_na_values, usecols=lambda x: x in known,
                       compression='infer')

    return coerceFields(data, schema)


def _coalesceCall(call, tie):
    return tie if isUnresolved(call) else call


def renameFields(data, schema, mapping=VendorSchema):
    """
    Maps vendor columns onto canonical fields

    Arguments:
      data : pandas.DataFrame of a raw clone file.
      schema : lymphoseq.Schema.RepertoireSchema.
      mapping : vendor field mapping class.

    Returns:
      pandas.DataFrame : existing canonical columns combined with renamed vendor columns.
                         Unmapped columns are dropped.
    """
    # Columns already named canonically
    fields = OrderedDict((f, data[f]) for f in schema.existing(data.columns))

    # Split tied calls into helper columns
    ties = OrderedDict()
    for rule in mapping.split:
        if rule.source in data.columns and not ties:
            ties = rule.apply(data[rule.source])

    # One-to-one renames; canonical columns and earlier rules take precedence
    for rule in mapping.rename:
        if rule.source in data.columns:
            for target, column in rule.apply(data[rule.source]).items():
                if target not in fields:
                    fields[target] = column

    # Resolve ties against the primary call
    for i, (target, column) in enumerate(ties.items()):
        if i == 0 and target in fields:
            fields[target] = pd.Series([_coalesceCall(c, t) for c, t in zip(fields[target], column)],
                                       index=data.index, dtype=object)
        elif target not in fields:
            fields[target] = column

    db = pd.DataFrame(fields, index=data.index)

    return coerceFields(db, schema)


def fillSequences(data):
    """
    Copies nucleotide and amino acid sequences between canonical and legacy field names

    Arguments:
      data : pandas.DataFrame with canonical column names.

    Returns:
      pandas.DataFrame : data with both members of each sequence pair.
    """
    for seq, legacy in sequence_pairs:
        if seq in data.columns and legacy not in data.columns:
            data[legacy] = data[seq]
        elif legacy in data.columns and seq not in data.columns:
            data[seq] = data[legacy]

    if 'sequence' not in data.columns:
        raise SchemaError('No nucleotide sequence field found. Expected one of %s.' \
                          % ', '.join(['sequence', 'junction'] + VendorSchema.asVendor('sequence')))

    return data


def assignClones(data, repertoire_id):
    """
    Assigns clone identifiers by distinct junction in order of first appearance

    Arguments:
      data : pandas.DataFrame with a junction column.
      repertoire_id : repertoire identifier used as the clone identifier prefix.

    Returns:
      pandas.Series : clone identifiers of the form <repertoire_id>_<index>.
    """
    codes, __ = pd.factorize(data['junction'])
    return pd.Series(['%s_%i' % (repertoire_id, c + 1) for c in codes],
                     index=data.index, dtype=object)


def standardizeFields(data, repertoire_id, schema, mapping=VendorSchema):
    """
    Converts a raw clone table to canonical MiAIRR fields

    Arguments:
      data : pandas.DataFrame of a raw clone file.
      repertoire_id : repertoire identifier.
      schema : lymphoseq.Schema.RepertoireSchema.
      mapping : vendor field mapping class.

    Returns:
      pandas.DataFrame : records with renamed fields, sequence pairs, repertoire_id and clone_id.
    """
    db = renameFields(data, schema, mapping)
    db = fillSequences(db)

    # Remove records without a nucleotide sequence
    missing = db['sequence'].isna() | db['junction'].isna()
    if missing.any():
        printWarning('%i records in %s have no nucleotide sequence and were removed.' \
                     % (missing.sum(), repertoire_id))
        db = db.loc[~missing].reset_index(drop=True)

    db['repertoire_id'] = repertoire_id
    db['clone_id'] = assignClones(db, repertoire_id)

    return db


def alignFields(data, schema):
    """
    Adds missing canonical fields as nulls and orders columns by the schema

    Arguments:
      data : pandas.DataFrame with canonical column names.
      schema : lymphoseq.Schema.RepertoireSchema.

    Returns:
      pandas.DataFrame : records with every schema field.
    """
    if schema.isComplete(data.columns):
        return data

    missing = [f for f in schema.fields if f not in data.columns]
    empty = pd.DataFrame({f: pd.Series([None] * len(data), index=data.index, dtype=object) \
                          for f in missing}, index=data.index)
    db = pd.concat([data, empty], axis=1)
    db = coerceFields(db, schema, fields=missing)
    extra = [f for f in data.columns if f not in schema]

    return db[schema.fields + extra]


def parseRepertoire(data, repertoire_id, schema, mapping=VendorSchema):
    """
    Standardizes and annotates the records of one clone file

    Arguments:
      data : pandas.DataFrame of a raw clone file.
      repertoire_id : repertoire identifier.
      schema : lymphoseq.Schema.RepertoireSchema.
      mapping : vendor field mapping class.

    Returns:
      pandas.DataFrame : annotated MiAIRR records. Input that already has every
                         schema field is returned unchanged.
    """
    if schema.isComplete(data.columns):
        return data

    db = standardizeFields(data, repertoire_id, schema, mapping)
    db = alignFields(db, schema)

    return annotateRepertoire(db)
