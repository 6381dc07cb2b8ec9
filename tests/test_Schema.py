"""
Unit tests for Schema
"""
# Info
__author__ = 'LymphoSeq Development Team'
from lymphoseq import __version__, __date__

# Imports
import os
import time
import unittest
import pandas as pd
from tempfile import TemporaryDirectory

# LymphoSeq imports
from lymphoseq.Schema import RenameRule, SchemaError, SplitRule, VendorSchema, coerceFields, \
                             loadSchema, parseLogical


class Test_Schema(unittest.TestCase):
    def setUp(self):
        print('-> %s()' % self._testMethodName)
        self.schema = loadSchema()
        self.start = time.time()

    def tearDown(self):
        t = time.time() - self.start
        print('<- %s() %.3f' % (self._testMethodName, t))

    def test_loadSchema(self):
        self.assertEqual(144, len(self.schema))
        self.assertEqual(len(self.schema.fields), len(set(self.schema.fields)))
        self.assertEqual('sequence_id', self.schema.fields[0])
        self.assertEqual('j_family', self.schema.fields[-1])
        self.assertIn('junction', self.schema)
        self.assertNotIn('nucleotide', self.schema)
        self.assertEqual('integer', self.schema.type('sequence_id'))
        self.assertEqual('integer', self.schema.type('duplicate_count'))
        self.assertEqual('number', self.schema.type('duplicate_frequency'))
        self.assertEqual('boolean', self.schema.type('productive'))
        self.assertEqual('string', self.schema.type('v_call'))
        self.assertIsNone(self.schema.type('nucleotide'))

    def test_loadSchemaFile(self):
        with TemporaryDirectory() as temp_dir:
            schema_file = os.path.join(temp_dir, 'fields.tsv')
            with open(schema_file, 'w') as handle:
                handle.write('name\nsequence\njunction\nrepertoire_id\n')
            schema = loadSchema(schema_file)
            self.assertEqual(['sequence', 'junction', 'repertoire_id'], schema.fields)
            self.assertEqual('string', schema.type('junction'))

            bad_file = os.path.join(temp_dir, 'bad.tsv')
            with open(bad_file, 'w') as handle:
                handle.write('field\ttype\nsequence\tstring\n')
            self.assertRaises(SchemaError, loadSchema, bad_file)

    def test_isComplete(self):
        self.assertTrue(self.schema.isComplete(self.schema.fields + ['extra']))
        self.assertFalse(self.schema.isComplete(self.schema.fields[1:]))
        self.assertEqual(['sequence_id', 'junction'],
                         self.schema.existing(['junction', 'nucleotide', 'sequence_id']))

    def test_VendorSchema(self):
        self.assertEqual(('d_call', 'd2_call'), VendorSchema.asAIRR('dGeneNameTies'))
        self.assertEqual(('sequence_aa',), VendorSchema.asAIRR('aminoAcid'))
        self.assertEqual(('duplicate_count',), VendorSchema.asAIRR('cloneCount'))
        self.assertIsNone(VendorSchema.asAIRR('frequencyCount (%)'))
        self.assertIsInstance(VendorSchema.rule('nucleotide'), RenameRule)
        self.assertIsInstance(VendorSchema.rule('d_allele_ties'), SplitRule)

        counts = VendorSchema.asVendor('duplicate_count')
        self.assertIn('count (templates/reads)', counts)
        self.assertLess(counts.index('templates'), counts.index('seq_reads'))
        self.assertEqual(['nucleotide', 'nucleotide(CDR3 in lowercase)', 'rearrangement', 'nSeqCDR3'],
                         VendorSchema.asVendor('sequence'))

    def test_SplitRule(self):
        rule = SplitRule('dGeneNameTies', ('d_call', 'd2_call'))
        result = rule.apply(pd.Series(['TCRBD01-01,TCRBD02-01', 'TCRBD02-01', None]))
        self.assertEqual(['d_call', 'd2_call'], list(result.keys()))
        self.assertEqual(['TCRBD01-01', 'TCRBD02-01', ''], result['d_call'].fillna('').tolist())
        self.assertEqual(['TCRBD02-01', '', ''], result['d2_call'].fillna('').tolist())

        self.assertRaises(SchemaError, rule.apply, pd.Series(['A,B,C']))

    def test_parseLogical(self):
        self.assertTrue(parseLogical('T'))
        self.assertTrue(parseLogical('true'))
        self.assertFalse(parseLogical('FALSE'))
        self.assertIsNone(parseLogical('In'))
        self.assertIsNone(parseLogical(None))

    def test_coerceFields(self):
        data = pd.DataFrame({'duplicate_count': ['10', 'x', None],
                             'duplicate_frequency': ['0.5', None, '1'],
                             'productive': ['T', 'false', 'In'],
                             'v_call': ['TCRBV05-01', None, 'TCRBV12-03'],
                             'nucleotide': ['1', '2', '3']})
        db = coerceFields(data.copy(), self.schema)
        self.assertEqual('Int64', str(db['duplicate_count'].dtype))
        self.assertEqual(10, db['duplicate_count'].iloc[0])
        self.assertTrue(pd.isna(db['duplicate_count'].iloc[1]))
        self.assertEqual(0.5, db['duplicate_frequency'].iloc[0])
        self.assertTrue(pd.isna(db['duplicate_frequency'].iloc[1]))
        self.assertEqual('boolean', str(db['productive'].dtype))
        self.assertTrue(db['productive'].iloc[0])
        self.assertFalse(db['productive'].iloc[1])
        self.assertTrue(pd.isna(db['productive'].iloc[2]))
        self.assertEqual(['1', '2', '3'], db['nucleotide'].tolist())

        # Idempotence
        again = coerceFields(db.copy(), self.schema)
        pd.testing.assert_frame_equal(db, again)


if __name__ == '__main__':
    unittest.main()
