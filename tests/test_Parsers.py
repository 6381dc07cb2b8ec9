"""
Unit tests for Parsers
"""
# Info
__author__ = 'LymphoSeq Development Team'
from lymphoseq import __version__, __date__

# Imports
import os
import time
import unittest
import pandas as pd

# Paths
test_path = os.path.dirname(os.path.realpath(__file__))
data_path = os.path.join(test_path, 'data')

# LymphoSeq imports
from lymphoseq.Parsers import alignFields, assignClones, fillSequences, getRepertoireId, \
                              parseRepertoire, readCloneFile, renameFields
from lymphoseq.Schema import SchemaError, loadSchema


class Test_Parsers(unittest.TestCase):
    def setUp(self):
        print('-> %s()' % self._testMethodName)
        self.schema = loadSchema()
        self.v2_file = os.path.join(data_path, 'repertoires', 'adaptive_v2.tsv')
        self.v3_file = os.path.join(data_path, 'repertoires', 'adaptive_v3.tsv')
        self.mixcr_file = os.path.join(data_path, 'repertoires', 'mixcr.tsv')
        self.start = time.time()

    def tearDown(self):
        t = time.time() - self.start
        print('<- %s() %.3f' % (self._testMethodName, t))

    def test_getRepertoireId(self):
        self.assertEqual('015V06_CFAR', getRepertoireId('/x/015V06_CFAR.tsv.gz'))
        self.assertEqual('015V06_CFAR', getRepertoireId('015V06_CFAR.tsv'))
        self.assertEqual('sample.v2', getRepertoireId('data/sample.v2.txt'))

    def test_readCloneFile(self):
        data = readCloneFile(self.v2_file, self.schema)
        self.assertEqual(5, len(data))
        self.assertNotIn('frequencyCount (%)', data.columns)
        self.assertNotIn('sequenceStatus', data.columns)
        self.assertIn('count (templates/reads)', data.columns)
        self.assertEqual('100', data['count (templates/reads)'].iloc[0])
        self.assertTrue(pd.isna(data['dGeneNameTies'].iloc[0]))
        self.assertEqual('unresolved', data['dMaxResolved'].iloc[1])

    def test_renameFields(self):
        # Canonical columns win over vendor columns
        data = pd.DataFrame({'duplicate_count': ['7'], 'count': ['3'], 'nucleotide': ['ACGT']})
        db = renameFields(data, self.schema)
        self.assertEqual([7], db['duplicate_count'].tolist())
        self.assertEqual(['ACGT'], db['sequence'].tolist())
        self.assertNotIn('count', db.columns)

        # Earlier rules win over later rules
        data = pd.DataFrame({'seq_reads': ['30'], 'templates': ['3'], 'rearrangement': ['ACGT']})
        db = renameFields(data, self.schema)
        self.assertEqual([3], db['duplicate_count'].tolist())

        # Tied D calls
        data = pd.DataFrame({'nucleotide': ['A', 'C', 'G'],
                             'dMaxResolved': ['TCRBD01-01', 'unresolved', None],
                             'dGeneNameTies': [None, 'TCRBD01-01,TCRBD02-01', 'TCRBD02-01']})
        db = renameFields(data, self.schema)
        self.assertEqual(['TCRBD01-01', 'TCRBD01-01', 'TCRBD02-01'], db['d_call'].tolist())
        self.assertEqual(['', 'TCRBD02-01', ''],
                         db['d2_call'].fillna('').tolist())
        self.assertNotIn('dGeneNameTies', db.columns)

    def test_fillSequences(self):
        db = fillSequences(pd.DataFrame({'junction': ['ACGT'], 'junction_aa': ['T']}))
        self.assertEqual(['ACGT'], db['sequence'].tolist())
        self.assertEqual(['T'], db['sequence_aa'].tolist())

        db = fillSequences(pd.DataFrame({'sequence': ['ACGT']}))
        self.assertEqual(['ACGT'], db['junction'].tolist())
        self.assertNotIn('junction_aa', db.columns)

        self.assertRaises(SchemaError, fillSequences, pd.DataFrame({'sequence_aa': ['T']}))

    def test_assignClones(self):
        data = pd.DataFrame({'junction': ['AAA', 'CCC', 'AAA', 'GGG']})
        clones = assignClones(data, 'rep')
        self.assertEqual(['rep_1', 'rep_2', 'rep_1', 'rep_3'], clones.tolist())

    def test_alignFields(self):
        data = pd.DataFrame({'junction': ['ACGT'], 'duplicate_count': [3], 'extra': ['x']})
        db = alignFields(data, self.schema)
        self.assertEqual(self.schema.fields + ['extra'], list(db.columns))
        self.assertEqual('Int64', str(db['sequence_id'].dtype))
        self.assertEqual('boolean', str(db['productive'].dtype))
        self.assertTrue(pd.isna(db['v_call'].iloc[0]))

    def test_parseAdaptiveV2(self):
        data = readCloneFile(self.v2_file, self.schema)
        db = parseRepertoire(data, 'adaptive_v2', self.schema)

        self.assertEqual(self.schema.fields, list(db.columns))
        self.assertEqual(5, len(db))
        self.assertEqual(['adaptive_v2'] * 5, db['repertoire_id'].tolist())
        self.assertEqual([1, 2, 3, 4, 5], db['sequence_id'].tolist())
        self.assertEqual(['adaptive_v2_1', 'adaptive_v2_2', 'adaptive_v2_3', 'adaptive_v2_1', 'adaptive_v2_4'],
                         db['clone_id'].tolist())
        self.assertEqual(db['sequence'].tolist(), db['junction'].tolist())
        self.assertEqual([100, 50, 25, 20, 5], db['duplicate_count'].tolist())
        for x, y in zip([0.5, 0.25, 0.125, 0.1, 0.025], db['duplicate_frequency']):
            self.assertAlmostEqual(x, y)

        # Gene calls
        self.assertEqual('unresolved', db['v_call'].iloc[1])
        self.assertEqual(['TCRBD01-01*01', 'TCRBD01-01', 'TCRBD02-01*02', 'TCRBD02-01', 'TCRBD01-01'],
                         db['d_call'].tolist())
        self.assertEqual('TCRBD02-01', db['d2_call'].iloc[1])
        self.assertTrue(pd.isna(db['d2_call'].iloc[0]))
        self.assertEqual(['TCRBV05', 'unrecognized', 'TCRBV12', 'TCRBV05', 'TCRBV20'],
                         db['v_family'].tolist())
        self.assertEqual([True, False, True, True, True], db['complete_vdj'].tolist())

        # Functionality
        self.assertEqual([True, True, False, True, False], db['productive'].tolist())
        self.assertEqual([False, False, True, False, True], db['stop_codon'].tolist())
        self.assertEqual(['in-frame', 'in-frame', 'out-of-frame', 'in-frame', ''],
                         db['reading_frame'].fillna('').tolist())
        self.assertEqual(42, db['junction_length'].iloc[0])
        self.assertEqual(14, db['junction_aa_length'].iloc[0])
        self.assertTrue(pd.isna(db['junction_aa_length'].iloc[4]))

    def test_parseAdaptiveV3(self):
        data = readCloneFile(self.v3_file, self.schema)
        db = parseRepertoire(data, 'adaptive_v3', self.schema)

        self.assertEqual([3, 1, 1], db['duplicate_count'].tolist())
        self.assertEqual(['TCRBD01-01*01', 'TCRBD01-01*01', 'TCRBD02-01'], db['d_call'].tolist())
        self.assertEqual('TCRBD02-01*01', db['d2_call'].iloc[1])
        self.assertEqual([True, True, False], db['productive'].tolist())
        self.assertAlmostEqual(0.6, db['duplicate_frequency'].iloc[0])

    def test_parseMiXCR(self):
        data = readCloneFile(self.mixcr_file, self.schema)
        db = parseRepertoire(data, 'mixcr', self.schema)

        self.assertEqual([30, 10], db['duplicate_count'].tolist())
        self.assertEqual(['CASSLAGGEQFF', 'CASSQDTQYF'], db['junction_aa'].tolist())
        self.assertEqual(['TRBV12', 'TRBV4'], db['v_family'].tolist())
        self.assertEqual(['TRBD2', 'unrecognized'], db['d_family'].tolist())
        self.assertEqual([True, False], db['complete_vdj'].tolist())
        self.assertAlmostEqual(0.75, db['duplicate_frequency'].iloc[0])

    def test_parseComplete(self):
        data = readCloneFile(self.v2_file, self.schema)
        db = parseRepertoire(data, 'adaptive_v2', self.schema)
        again = parseRepertoire(db, 'other', self.schema)
        self.assertIs(db, again)
        self.assertEqual(['adaptive_v2'] * 5, again['repertoire_id'].tolist())

    def test_parseMissingRows(self):
        data = pd.DataFrame({'nucleotide': ['ACGT', None, 'TTT'],
                             'aminoAcid': ['T', 'S', None],
                             'count': ['1', '2', '3']})
        db = parseRepertoire(data, 'rep', self.schema)
        self.assertEqual(['ACGT', 'TTT'], db['sequence'].tolist())
        self.assertEqual([1, 2], db['sequence_id'].tolist())
        self.assertAlmostEqual(0.25, db['duplicate_frequency'].iloc[0])

    def test_parseErrors(self):
        data = readCloneFile(os.path.join(data_path, 'malformed', 'no_sequence.tsv'), self.schema)
        self.assertRaises(SchemaError, parseRepertoire, data, 'no_sequence', self.schema)
        data = readCloneFile(os.path.join(data_path, 'malformed', 'too_many_ties.tsv'), self.schema)
        self.assertRaises(SchemaError, parseRepertoire, data, 'too_many_ties', self.schema)


if __name__ == '__main__':
    unittest.main()
