"""
MiAIRR reference schema and vendor field mappings
"""

# Info
__author__ = 'LymphoSeq Development Team'
from lymphoseq import __version__, __date__

# Imports
import pandas as pd
from collections import OrderedDict
from importlib.resources import files
from itertools import chain

# LymphoSeq imports
from lymphoseq.Defaults import default_schema_file


class SchemaError(ValueError):
    """
    Exception raised when a record set cannot be mapped onto the reference schema
    """
    pass


class RepertoireSchema:
    """
    Ordered set of canonical MiAIRR fields and their types

    Attributes:
      fields (list) : canonical field names in schema order.
      types (OrderedDict) : {field name: type}, where type is one of
                            'string', 'integer', 'number' or 'boolean'.
    """
    # Fields dropped from the iReceptor view
    ireceptor_exclude = ['repertoire_id',
                         'sample_processing_id',
                         'data_processing_id',
                         'reading_frame',
                         'v_family',
                         'd_family',
                         'j_family',
                         'duplicate_frequency']

    def __init__(self, types):
        """
        Initializer

        Arguments:
          types : ordered dictionary of {field name: type}.

        Returns:
          lymphoseq.Schema.RepertoireSchema
        """
        self.types = OrderedDict(types)
        self.fields = list(self.types.keys())

    def __len__(self):
        return len(self.fields)

    def __contains__(self, field):
        return field in self.types

    def __iter__(self):
        return iter(self.fields)

    def type(self, field):
        """
        Returns the type of a canonical field

        Arguments:
          field : canonical field name.

        Returns:
          str : field type; None if the field is not in the schema.
        """
        return self.types.get(field, None)

    def isComplete(self, columns):
        """
        Checks whether a set of column names covers every canonical field

        Arguments:
          columns : iterable of column names.

        Returns:
          bool : True if every schema field is present in columns.
        """
        present = set(columns)
        return all(f in present for f in self.fields)

    def existing(self, columns):
        """
        Returns the canonical fields present in a set of column names

        Arguments:
          columns : iterable of column names.

        Returns:
          list : canonical field names in schema order.
        """
        present = set(columns)
        return [f for f in self.fields if f in present]


def loadSchema(schema_file=None):
    """
    Loads the MiAIRR reference schema

    Arguments:
      schema_file : tab-delimited file with name and type columns.
                    If None, load the schema packaged with lymphoseq.

    Returns:
      lymphoseq.Schema.RepertoireSchema : the reference schema.
    """
    if schema_file is None:
        handle = files('lymphoseq').joinpath('data').joinpath(default_schema_file).open('r')
    else:
        handle = open(schema_file, 'r')

    with handle:
        table = pd.read_csv(handle, sep='\t', dtype=str, keep_default_na=False)

    if 'name' not in table.columns:
        raise SchemaError('Schema file %s has no name column' % schema_file)
    names = table['name'].str.strip()
    types = table['type'].str.strip() if 'type' in table.columns else ['string'] * len(names)

    return RepertoireSchema(zip(names, types))


class RenameRule:
    """
    One-to-one mapping of a vendor column onto a canonical field
    """
    def __init__(self, source, target):
        self.source = source
        self.target = target

    @property
    def targets(self):
        return (self.target,)

    def apply(self, column):
        """
        Maps a vendor column

        Arguments:
          column : pandas.Series holding the vendor column.

        Returns:
          OrderedDict : {canonical field: pandas.Series}
        """
        return OrderedDict([(self.target, column)])


class SplitRule:
    """
    Mapping of a comma-joined vendor column holding two tied calls onto two canonical fields
    """
    def __init__(self, source, targets, sep=','):
        self.source = source
        self.targets = tuple(targets)
        self.sep = sep

    def _split(self, value):
        if not isinstance(value, str):
            return [None] * len(self.targets)
        calls = [x.strip() or None for x in value.split(self.sep)]
        if len(calls) > len(self.targets):
            raise SchemaError('Field %s holds %i tied calls, at most %i are allowed: %s' \
                              % (self.source, len(calls), len(self.targets), value))
        return calls + [None] * (len(self.targets) - len(calls))

    def apply(self, column):
        """
        Splits a vendor column

        Arguments:
          column : pandas.Series holding the tied calls.

        Returns:
          OrderedDict : {canonical field: pandas.Series} with one entry per target field.
        """
        calls = [self._split(x) for x in column]
        result = OrderedDict()
        for i, t in enumerate(self.targets):
            result[t] = pd.Series([c[i] for c in calls], index=column.index, dtype=object)

        return result


class VendorSchema:
    """
    Vendor column names to MiAIRR field mappings
    """
    # Tied D gene calls
    split = [SplitRule('d_allele_ties', ('d_call', 'd2_call')),
             SplitRule('dGeneNameTies', ('d_call', 'd2_call'))]

    # Amino acid sequence
    amino_acid = OrderedDict([('aminoAcid', 'sequence_aa'),
                              ('amino_acid', 'sequence_aa'),
                              ('aminoAcid(CDR3 in lowercase)', 'sequence_aa'),
                              ('aaSeqCDR3', 'sequence_aa')])

    # Nucleotide sequence
    nucleotide = OrderedDict([('nucleotide', 'sequence'),
                              ('nucleotide(CDR3 in lowercase)', 'sequence'),
                              ('rearrangement', 'sequence'),
                              ('nSeqCDR3', 'sequence')])

    # CDR regions
    region = OrderedDict([('cdr1_amino_acid', 'cdr1_aa'),
                          ('cdr1_rearrangement', 'cdr1'),
                          ('cdr2_amino_acid', 'cdr2_aa'),
                          ('cdr2_rearrangement', 'cdr2'),
                          ('cdr3_amino_acid', 'cdr3_aa'),
                          ('cdr3_rearrangement', 'cdr3')])

    # Gene calls
    gene = OrderedDict([('v_resolved', 'v_call'),
                        ('vMaxResolved', 'v_call'),
                        ('bestVGene', 'v_call'),
                        ('d_resolved', 'd_call'),
                        ('dMaxResolved', 'd_call'),
                        ('bestDGene', 'd_call'),
                        ('j_resolved', 'j_call'),
                        ('jMaxResolved', 'j_call'),
                        ('bestJGene', 'j_call')])

    # Counts
    count = OrderedDict([('count', 'duplicate_count'),
                         ('count (reads)', 'duplicate_count'),
                         ('count (templates)', 'duplicate_count'),
                         ('count (templates/reads)', 'duplicate_count'),
                         ('templates', 'duplicate_count'),
                         ('seq_reads', 'duplicate_count'),
                         ('cloneCount', 'duplicate_count')])

    # Productivity and locus
    status = OrderedDict([('frame_type', 'productive'),
                          ('function', 'productive'),
                          ('fuction', 'productive'),
                          ('locus', 'locus')])

    # One-to-one rules in priority order
    rename = [RenameRule(k, v) for k, v in chain(amino_acid.items(),
                                                 nucleotide.items(),
                                                 region.items(),
                                                 gene.items(),
                                                 count.items(),
                                                 status.items())]

    # Mapping of vendor column names to rules
    _vendor = OrderedDict((r.source, r) for r in chain(split, rename))

    @staticmethod
    def fields():
        """
        Returns the list of known vendor column names

        Returns:
          list : vendor column names in rule order.
        """
        return list(VendorSchema._vendor.keys())

    @staticmethod
    def rule(field):
        """
        Returns the mapping rule for a vendor column

        Arguments:
          field : vendor column name.

        Returns:
          RenameRule or SplitRule : mapping rule; None if the column is unknown.
        """
        return VendorSchema._vendor.get(field, None)

    @staticmethod
    def asAIRR(field):
        """
        Returns the canonical field names for a vendor column

        Arguments:
          field : vendor column name.

        Returns:
          tuple : canonical field names; None if the column has no mapping.
        """
        r = VendorSchema._vendor.get(field, None)
        return r.targets if r is not None else None

    @staticmethod
    def asVendor(field):
        """
        Returns the vendor column names mapped onto a canonical field

        Arguments:
          field : canonical field name.

        Returns:
          list : vendor column names in rule order.
        """
        return [k for k, r in VendorSchema._vendor.items() if field in r.targets]


# Boolean string conversion
def parseLogical(v):
    parse_map = {True: True, 'T': True, 'TRUE': True, 'True': True, 'true': True,
                 False: False, 'F': False, 'FALSE': False, 'False': False, 'false': False}
    try:  return parse_map.get(v, None)
    except TypeError:  return None


def coerceFields(data, schema, fields=None):
    """
    Converts canonical columns to their schema types

    Arguments:
      data : pandas.DataFrame.
      schema : lymphoseq.Schema.RepertoireSchema.
      fields : columns to convert. If None, convert every canonical column in data.

    Returns:
      pandas.DataFrame : data with converted columns.
    """
    if fields is None:
        fields = schema.existing(data.columns)

    for f in fields:
        t = schema.type(f)
        if t == 'integer':
            data[f] = pd.to_numeric(data[f], errors='coerce').round().astype('Int64')
        elif t == 'number':
            data[f] = pd.to_numeric(data[f], errors='coerce').astype(float)
        elif t == 'boolean':
            data[f] = data[f].map(parseLogical).astype('boolean')

    return data
