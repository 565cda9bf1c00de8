#!/usr/bin/env python
"""Tests of nucleosome map checks in :mod:`nucleomap.genomics.verification`"""
import os
import math
import shutil
import tempfile
import unittest

import pandas

from nucleomap.genomics.score_source import SparseScoreSource
from nucleomap.genomics.verification import (read_nucleosome_table,
                                             overlap_lengths,
                                             center_peak_mapping,
                                             verify_table,
                                             summarize_verification,
                                             filter_overlaps)
from nucleomap.util.services.exceptions import MalformedFileError

_VERIFIED_COLUMNS = ["Chromosome",
                     "Start",
                     "Stop",
                     "Occupancy",
                     "overlap_length",
                     "center_peak_mapping",
                     "center_peak_offset"]

def make_verified_table(rows):
    """Create a table resembling output of :func:`verify_table`"""
    table = pandas.DataFrame(rows,columns=_VERIFIED_COLUMNS)
    table["overlap_length"] = table["overlap_length"].astype("Int64")
    table["center_peak_offset"] = table["center_peak_offset"].astype("Int64")
    return table

def make_nucleosome_table():
    return pandas.DataFrame([("chrI",1002,1148,1075,"NucI:1075",10.0,3),
                             ("chrI",1047,1193,1120,"NucI:1120",5.0,4),
                             ("chrI",2000,2146,2073,"NucI:2073",3.0,None),
                             ("chrII",1000,1146,1073,"NucII:1073",1.0,0),
                            ],
                            columns=["Chromosome","Start","Stop","Midpoint",
                                     "NucleosomeID","Occupancy","Fuzziness"])

def make_source():
    source = SparseScoreSource()
    source.add("chrI",1075,9)
    source.add("chrI",1140,9)
    source.add("chrII",1073,2)
    return source


class TestOverlapLengths(unittest.TestCase):

    def test_overlaps(self):
        found = overlap_lengths(make_nucleosome_table())
        self.assertEqual(found[0],101)
        self.assertTrue(found[1:].isna().all())

    def test_same_start_not_overlap(self):
        table = pandas.DataFrame([("chrI",100,246),("chrI",100,246)],columns=["Chromosome","Start","Stop"])
        self.assertTrue(overlap_lengths(table).isna().all())

    def test_adjacent_not_overlap(self):
        table = pandas.DataFrame([("chrI",100,246),("chrI",246,392)],columns=["Chromosome","Start","Stop"])
        self.assertTrue(overlap_lengths(table).isna().all())

    def test_empty_table(self):
        table = pandas.DataFrame([],columns=["Chromosome","Start","Stop"])
        self.assertEqual(len(overlap_lengths(table)),0)


class TestCenterPeakMapping(unittest.TestCase):

    def check(self,values,expected):
        source = SparseScoreSource()
        for position, value in values.items():
            source.add("chrI",position,value)
        self.assertEqual(center_peak_mapping(source,"chrI",1000),expected)

    def test_centered(self):
        self.check({ 1000 : 5, 1012 : 3 },("centered",0))
        self.check({ 990 : 5 },("centered",-10))

    def test_offset(self):
        self.check({ 1020 : 9 },("offset",20))
        self.check({ 1011 : 9 },("offset",11))

    def test_closest_maximum_chosen(self):
        self.check({ 992 : 9, 1011 : 9 },("centered",-8))

    def test_equidistant_maxima_resolve_to_leftmost(self):
        self.check({ 985 : 9, 1015 : 9 },("offset",-15))

    def test_radius(self):
        self.check({ 1036 : 9 },(None,None))
        self.check({ 1035 : 9 },("offset",35))

    def test_no_signal(self):
        self.check({},(None,None))

    def test_custom_radius_and_tolerance(self):
        source = SparseScoreSource()
        source.add("chrI",1045,9)
        self.assertEqual(center_peak_mapping(source,"chrI",1000,radius=50,tolerance=45),("centered",45))


class TestVerifyTable(unittest.TestCase):

    def setUp(self):
        self.table = verify_table(make_source(),make_nucleosome_table())

    def test_columns_added(self):
        for column in ("overlap_length","center_peak_mapping","center_peak_offset"):
            self.assertIn(column,self.table.columns)
        self.assertNotIn("overlap_length",make_nucleosome_table().columns)

    def test_values(self):
        self.assertEqual(self.table["overlap_length"][0],101)
        self.assertEqual(self.table["center_peak_mapping"].tolist(),["centered","offset",None,"centered"])
        self.assertEqual(self.table["center_peak_offset"][0],0)
        self.assertEqual(self.table["center_peak_offset"][1],20)
        self.assertTrue(pandas.isna(self.table["center_peak_offset"][2]))

    def test_summary(self):
        summary = summarize_verification(self.table)
        self.assertEqual(summary["total"],4)
        self.assertEqual(summary["overlap_count"],1)
        self.assertEqual(summary["overlap_percent"],25.0)
        self.assertEqual(summary["overlap_mean"],101.0)
        self.assertTrue(math.isnan(summary["overlap_std"]))
        self.assertEqual(summary["centered_count"],2)
        self.assertEqual(summary["centered_percent"],50.0)
        self.assertEqual(summary["offcenter_count"],2)
        self.assertEqual(summary["offset_mean"],20.0)

    def test_filter(self):
        filtered, offset_count, occupancy_count = filter_overlaps(self.table)
        self.assertEqual(filtered["NucleosomeID"].tolist(),["NucI:1075","NucI:2073","NucII:1073"])
        self.assertEqual((offset_count,occupancy_count),(1,0))


class TestSummarizeVerification(unittest.TestCase):

    def test_offsets_measured_as_distances(self):
        table = make_verified_table([("chrI",100,246,1.0,None,"offset",-20),
                                     ("chrI",400,546,1.0,None,"offset",30),
                                     ("chrI",700,846,1.0,None,"centered",5),
                                    ])
        summary = summarize_verification(table)
        self.assertEqual(summary["offset_mean"],25.0)
        self.assertAlmostEqual(summary["offset_std"],math.sqrt(50))
        self.assertEqual(summary["overlap_count"],0)

    def test_empty_table(self):
        summary = summarize_verification(make_verified_table([]))
        self.assertEqual(summary["total"],0)
        self.assertTrue(math.isnan(summary["overlap_percent"]))


class TestFilterOverlaps(unittest.TestCase):

    def check(self,rows,expected_starts,expected_counts,max_overlap=30):
        table = make_verified_table(rows)
        filtered, offset_count, occupancy_count = filter_overlaps(table,max_overlap=max_overlap)
        self.assertEqual(filtered["Start"].tolist(),expected_starts)
        self.assertEqual((offset_count,occupancy_count),expected_counts)

    def test_both_offset_removes_more_offset(self):
        self.check([("chrI",100,246,5.0,46,"offset",-25),
                    ("chrI",200,346,5.0,None,"offset",15)],
                   [200],(1,0))

    def test_both_equally_offset_removes_second(self):
        self.check([("chrI",100,246,5.0,46,"offset",-15),
                    ("chrI",200,346,5.0,None,"offset",15)],
                   [100],(1,0))

    def test_first_offset_removed(self):
        self.check([("chrI",100,246,9.0,46,"offset",20),
                    ("chrI",200,346,1.0,None,"centered",0)],
                   [200],(1,0))

    def test_second_offset_removed(self):
        self.check([("chrI",100,246,1.0,46,"centered",2),
                    ("chrI",200,346,9.0,None,"offset",-12)],
                   [100],(1,0))

    def test_both_centered_removes_lower_occupancy(self):
        self.check([("chrI",100,246,3.0,46,"centered",0),
                    ("chrI",200,346,8.0,None,"centered",1)],
                   [200],(0,1))

    def test_both_centered_equal_occupancy_removes_second(self):
        self.check([("chrI",100,246,3.0,46,"centered",0),
                    ("chrI",200,346,3.0,None,"centered",1)],
                   [100],(0,1))

    def test_overlap_at_limit_kept(self):
        self.check([("chrI",100,246,3.0,30,"centered",0),
                    ("chrI",216,362,8.0,None,"centered",1)],
                   [100,216],(0,0))
        self.check([("chrI",100,246,3.0,30,"centered",0),
                    ("chrI",216,362,8.0,None,"centered",1)],
                   [216],(0,1),max_overlap=29)

    def test_removed_second_not_compared_to_successor(self):
        self.check([("chrI",100,246,5.0,46,"centered",0),
                    ("chrI",200,346,4.0,46,"centered",0),
                    ("chrI",300,446,9.0,None,"centered",0)],
                   [100,300],(0,1))

    def test_no_signal_treated_as_centered(self):
        self.check([("chrI",100,246,5.0,46,None,None),
                    ("chrI",200,346,4.0,None,"centered",0)],
                   [100],(0,1))


class TestReadNucleosomeTable(unittest.TestCase):

    def setUp(self):
        self.tempdir = tempfile.mkdtemp(prefix="nucleomap")

    def tearDown(self):
        shutil.rmtree(self.tempdir)

    def write(self,text):
        fn = os.path.join(self.tempdir,"nucleosomes.txt")
        with open(fn,"w") as fout:
            fout.write(text)
        return fn

    def test_read_table(self):
        fn = self.write("## args = {}\n" +
                        "Chromosome\tStart\tStop\tMidpoint\tNucleosomeID\tOccupancy\tFuzziness\n" +
                        "chrI\t35\t181\t108\tNucI:108\t16\t2\n" +
                        "chrI\t200\t346\t273\tNucI:273\t4.5\t.\n")
        table = read_nucleosome_table(fn)
        self.assertEqual(table["Midpoint"].tolist(),[108,273])
        self.assertEqual(table["Occupancy"].tolist(),[16.0,4.5])
        self.assertEqual(table["Fuzziness"][0],2)
        self.assertTrue(pandas.isna(table["Fuzziness"][1]))

    def test_numeric_chromosome_names_kept_as_strings(self):
        fn = self.write("Chromosome\tStart\tStop\tMidpoint\n2\t35\t181\t108\n")
        self.assertEqual(read_nucleosome_table(fn)["Chromosome"].tolist(),["2"])

    def test_midpoint_calculated(self):
        fn = self.write("Chromosome\tStart\tStop\nchrI\t100\t246\nchrI\t100\t247\n")
        self.assertEqual(read_nucleosome_table(fn)["Midpoint"].tolist(),[173,174])

    def test_missing_columns(self):
        fn = self.write("Chromosome\tBegin\tStop\nchrI\t100\t246\n")
        self.assertRaises(MalformedFileError,read_nucleosome_table,fn)
