"""
Default parameters
"""

# Info
__author__ = 'LymphoSeq Development Team'
from lymphoseq import __version__, __date__

# Input files
default_file_types = ('.tsv', '.txt', '.tsv.gz')
default_na_values = ['', 'NA', 'Nan', 'NaN']
default_schema_file = 'AIRR_fields.tsv'

# Annotation values
default_unresolved = 'unresolved'
default_unrecognized = 'unrecognized'
default_in_frame = 'in-frame'
default_out_frame = 'out-of-frame'

# Fields
default_id_field = 'repertoire_id'
default_count_field = 'duplicate_count'
default_frequency_field = 'duplicate_frequency'
default_seq_field = 'junction'
choices_seq_type = ('junction', 'junction_aa')

# Analysis parameters
default_edit_distance = 10
default_align_distance = 15
default_locus = 'VDJ'
default_kmer = 5
default_fasta_names = ('rank', 'junction_aa', 'duplicate_count')

# Executables
default_muscle_exec = 'muscle'

# Commandline arguments
default_out_args = {'out_dir': None,
                    'out_name': None}
