#!/usr/bin/env python
"""Tests of the sliding-window nucleosome caller in
:mod:`nucleomap.genomics.nucleosomes`
"""
import io
import unittest
import warnings

import numpy

from nucleomap.genomics.score_source import SparseScoreSource
from nucleomap.genomics.nucleosomes import (NucleosomeCall,
                                            NucleosomeCaller,
                                            TABLE_COLUMNS,
                                            scan_window,
                                            locate_peak,
                                            verify_peak,
                                            fuzziness,
                                            nucleosome_name,
                                            build_nucleosome,
                                            call_nucleosomes,
                                            calls_to_table)
from nucleomap.util.services.exceptions import ConfigurationError, ArgumentWarning, nm_once_registry


#===============================================================================
# INDEX: helper functions
#===============================================================================

def make_source(values,chrom="chrI",length=None):
    """Create a |SparseScoreSource| holding `values` on a single chromosome"""
    chr_lengths = None if length is None else { chrom : length }
    source = SparseScoreSource(chr_lengths=chr_lengths)
    for position, value in values.items():
        source.add(chrom,position,value)
    return source

def make_random_source(seed,chroms=(("chrI",20000),("chrII",15000))):
    """Create a |SparseScoreSource| with sparse random integer counts,
    concentrated in regularly spaced peaks with jittered positions"""
    rs = numpy.random.RandomState(seed)
    source = SparseScoreSource(chr_lengths=dict(chroms))
    for chrom, length in chroms:
        for center in range(100,length - 100,165):
            center += rs.randint(-20,21)
            for position in center + rs.randint(-30,31,size=rs.randint(0,25)):
                source.add(chrom,int(position),1)
        for position in rs.randint(1,length + 1,size=length // 50):
            source.add(chrom,int(position),1)
    return source


#===============================================================================
# INDEX: peak finding
#===============================================================================

class TestScanWindow(unittest.TestCase):

    def test_window_bounds(self):
        source = make_source({ 10 : 1, 145 : 2, 146 : 3 },length=1000)
        scores, start, stop = scan_window(source,"chrI",1,1000,145)
        self.assertEqual((start,stop),(1,145))
        self.assertEqual(scores,{ 10 : 1.0, 145 : 2.0 })

    def test_window_truncated_at_chromosome_end(self):
        source = make_source({ 95 : 1 },length=100)
        scores, start, stop = scan_window(source,"chrI",50,100,145)
        self.assertEqual((start,stop),(50,100))
        self.assertEqual(scores,{ 95 : 1.0 })

    def test_empty_window(self):
        source = make_source({},length=1000)
        scores, _, _ = scan_window(source,"chrI",1,1000,145)
        self.assertEqual(scores,{})


class TestLocatePeak(unittest.TestCase):

    def test_close_maxima_resolve_to_leftmost(self):
        scores = { 100 : 5, 101 : 5, 105 : 9, 106 : 9 }
        self.assertEqual(locate_peak(scores,100,130),105)

    def test_distant_maxima_resolve_to_window_center(self):
        scores = { 100 : 9, 110 : 3, 125 : 9 }
        self.assertEqual(locate_peak(scores,100,130),125)

    def test_unique_maximum(self):
        scores = { 100 : 5, 113 : 6, 129 : 5 }
        self.assertEqual(locate_peak(scores,100,130),113)

    def test_maxima_10bp_apart_resolve_to_leftmost(self):
        scores = { 200 : 4, 210 : 4 }
        self.assertEqual(locate_peak(scores,150,294),200)

    def test_maxima_11bp_apart_resolve_to_window_center(self):
        # window center is 222; 211 is closer than 200
        scores = { 200 : 4, 211 : 4 }
        self.assertEqual(locate_peak(scores,150,294),211)

    def test_equidistant_maxima_resolve_to_leftmost(self):
        scores = { 105 : 9, 125 : 9 }
        self.assertEqual(locate_peak(scores,100,130),105)

    def test_window_center_rounds_half_up(self):
        # center of [100,131] is 115.5, rounded to 116
        scores = { 104 : 3, 127 : 3 }
        self.assertEqual(locate_peak(scores,100,131),127)

    def test_scores_compared_exactly(self):
        # 0.1 + 0.2 is slightly greater than 0.3
        scores = { 100 : 0.3, 125 : 0.1 + 0.2 }
        self.assertEqual(locate_peak(scores,100,130),125)

    def test_random_peaks_in_window(self):
        rs = numpy.random.RandomState(7)
        for _ in range(200):
            start = int(rs.randint(1,10000))
            stop = start + int(rs.randint(0,145))
            positions = rs.randint(start,stop + 1,size=rs.randint(1,30))
            scores = { int(X) : int(rs.randint(1,4)) for X in positions }
            found = locate_peak(scores,start,stop)
            top = max(scores.values())
            self.assertTrue(start <= found <= stop)
            self.assertEqual(scores[found],top)
            if list(scores.values()).count(top) == 1:
                self.assertEqual(found,[K for K, V in scores.items() if V == top][0])


class TestVerifyPeak(unittest.TestCase):

    def test_peak_moved_to_neighborhood_maximum(self):
        source = make_source({ 60 : 3, 105 : 7, 108 : 9 })
        self.assertEqual(verify_peak(source,"chrI",55,105),108)

    def test_neighborhood_clamped_at_scan_start(self):
        source = make_source({ 40 : 20, 100 : 9 })
        self.assertEqual(verify_peak(source,"chrI",60,100),100)

    def test_neighborhood_radius(self):
        source = make_source({ 100 : 9, 151 : 20 })
        self.assertEqual(verify_peak(source,"chrI",1,100),100)
        source.add("chrI",150,30)
        self.assertEqual(verify_peak(source,"chrI",1,100),150)

    def test_empty_neighborhood_returns_input(self):
        source = make_source({})
        self.assertEqual(verify_peak(source,"chrI",55,105),105)

    def test_ties_resolve_to_closest(self):
        source = make_source({ 90 : 9, 112 : 9 })
        self.assertEqual(verify_peak(source,"chrI",1,100),90)

    def test_equidistant_ties_resolve_to_leftmost(self):
        source = make_source({ 90 : 9, 110 : 9 })
        self.assertEqual(verify_peak(source,"chrI",1,100),90)

    def test_random_verification_bounds(self):
        source = make_random_source(3)
        rs = numpy.random.RandomState(11)
        for _ in range(200):
            scan_start = int(rs.randint(1,19000))
            peak = scan_start + int(rs.randint(0,145))
            found = verify_peak(source,"chrI",scan_start,peak)
            self.assertTrue(abs(found - peak) <= 50)
            self.assertTrue(found >= scan_start)


#===============================================================================
# INDEX: nucleosome statistics and records
#===============================================================================

class TestFuzziness(unittest.TestCase):

    def test_single_position(self):
        self.assertEqual(fuzziness({ 1000 : 2 },1000),0)

    def test_symmetric_offsets(self):
        self.assertEqual(fuzziness({ 999 : 1, 1001 : 1 },1000),1)
        self.assertEqual(fuzziness({ 990 : 3, 1010 : 3 },1000),10)

    def test_no_signal(self):
        self.assertIsNone(fuzziness({},1000))

    def test_signal_outside_radius_ignored(self):
        self.assertIsNone(fuzziness({ 1038 : 5, 962 : 5 },1000))
        self.assertEqual(fuzziness({ 1037 : 5, 963 : 5 },1000),37)

    def test_weights_rounding_to_zero_ignored(self):
        self.assertIsNone(fuzziness({ 1000 : 0.004 },1000))

    def test_matches_repetition_list(self):
        scores = { 995 : 1.25, 1000 : 2.5, 1003 : 0.5, 1020 : 0.01, 985 : 3 }
        samples = []
        for position, score in scores.items():
            samples.extend([position - 1000] * int(round(100 * score)))
        expected = int(round(numpy.std(samples)))
        self.assertEqual(fuzziness(scores,1000),expected)

    def test_non_negative(self):
        rs = numpy.random.RandomState(5)
        for _ in range(50):
            positions = rs.randint(960,1041,size=rs.randint(1,20))
            scores = { int(X) : float(rs.randint(1,10)) / 4 for X in positions }
            self.assertTrue(fuzziness(scores,1000) >= 0)


class TestNucleosomeName(unittest.TestCase):

    def test_names(self):
        tests = [("chrIV",1050,"NucIV:1050"),
                 ("ChrX",5,"NucX:5"),
                 ("CHR2",7,"Nuc2:7"),
                 ("2L",99,"Nuc2L:99"),
                 ("chr",1,"Nucchr:1"),
                 ("scaffold_chr1",10,"Nucscaffold_chr1:10"),
                ]
        for chrom, midpoint, expected in tests:
            self.assertEqual(nucleosome_name(chrom,midpoint),expected)


class TestBuildNucleosome(unittest.TestCase):

    def test_coordinates_and_statistics(self):
        source = make_source({ 60 : 3, 105 : 7, 108 : 9, 146 : 4 })
        call = build_nucleosome(source,"chrI",108)
        self.assertEqual((call.start,call.stop,call.midpoint),(35,181,108))
        self.assertEqual(call.name,"NucI:108")
        self.assertEqual(call.occupancy,16.0)
        self.assertEqual(call.fuzziness,1)

    def test_no_signal_gives_null_fuzziness(self):
        source = make_source({ 200 : 5 })
        call = build_nucleosome(source,"chrI",100)
        self.assertEqual(call.occupancy,0.0)
        self.assertIsNone(call.fuzziness)


class TestNucleosomeCall(unittest.TestCase):

    def setUp(self):
        self.call = NucleosomeCall("chrI",35,181,108,"NucI:108",16.0,2)

    def test_as_row(self):
        self.assertEqual(self.call.as_row(),"chrI\t35\t181\t108\tNucI:108\t16\t2\n")

    def test_as_row_null_fuzziness(self):
        call = self.call._replace(occupancy=1.5,fuzziness=None)
        self.assertEqual(call.as_row(),"chrI\t35\t181\t108\tNucI:108\t1.5\t.\n")

    def test_as_row_keeps_occupancy_precision(self):
        call = self.call._replace(occupancy=0.123456789)
        self.assertEqual(call.as_row(),"chrI\t35\t181\t108\tNucI:108\t0.123456789\t2\n")
        self.assertIn("\t0.123456789\t",call.as_gff3())

    def test_as_gff3(self):
        expected = "chrI\tmap_nucleosomes\tnucleosome\t35\t181\t16\t.\t.\tID=NucI:108;Name=NucI:108;Fuzziness=2\n"
        self.assertEqual(self.call.as_gff3(),expected)

    def test_as_gff3_truncated_at_chromosome_start(self):
        call = NucleosomeCall("chrI",-23,123,50,"NucI:50",5.0,None)
        expected = "chrI\tsrc\tmnase_nucleosome\t1\t123\t5\t.\t.\tID=NucI:50;Name=NucI:50;Fuzziness=.\n"
        self.assertEqual(call.as_gff3(source="src",feature_type="mnase_nucleosome"),expected)

    def test_calls_to_table(self):
        calls = [self.call,NucleosomeCall("chrI",200,346,273,"NucI:273",4.0,None)]
        table = calls_to_table(calls)
        self.assertEqual(list(table.columns),TABLE_COLUMNS)
        self.assertEqual(table["Start"].tolist(),[35,200])
        self.assertEqual(table["Fuzziness"][0],2)
        self.assertTrue(table["Fuzziness"].isna()[1])

    def test_calls_to_table_empty(self):
        table = calls_to_table([])
        self.assertEqual(list(table.columns),TABLE_COLUMNS)
        self.assertEqual(len(table),0)


#===============================================================================
# INDEX: caller
#===============================================================================

class TestNucleosomeCaller(unittest.TestCase):

    def test_missing_threshold(self):
        source = make_source({ 10 : 1 })
        self.assertRaises(ConfigurationError,NucleosomeCaller,source,None)

    def test_invalid_window_and_buffer(self):
        source = make_source({ 10 : 1 })
        self.assertRaises(ConfigurationError,NucleosomeCaller,source,1,window=0)
        self.assertRaises(ConfigurationError,NucleosomeCaller,source,1,buffer=-1)

    def test_no_chromosomes(self):
        self.assertRaises(ConfigurationError,NucleosomeCaller(SparseScoreSource(),1).call)

    def test_only_organelle_chromosomes(self):
        source = make_source({ 500 : 10 },chrom="chrM")
        self.assertRaises(ConfigurationError,NucleosomeCaller(source,1).call)
        self.assertRaises(ConfigurationError,call_nucleosomes,source,1)

    def test_organelles_skipped(self):
        source = make_source({ 500 : 10 },chrom="chrI",length=2000)
        for chrom in ("chrM","chrMT","MT","mito_genome"):
            source.add(chrom,500,10)
        calls = NucleosomeCaller(source,5).call()
        self.assertEqual([X.chrom for X in calls],["chrI"])
        self.assertEqual(NucleosomeCaller(source,5).call(chromosomes=[("chrM",2000)]),[])

    def test_empty_chromosome_gives_no_calls(self):
        source = make_source({},length=1000)
        debug = io.StringIO()
        calls = NucleosomeCaller(source,1,debug=debug).call_chromosome("chrI",1000)
        self.assertEqual(calls,[])
        self.assertIn("Did not find a peak",debug.getvalue())
        self.assertIn("### Window chrI:146..290",debug.getvalue())

    def test_window_below_threshold(self):
        source = make_source({ 500 : 4 },length=1000)
        self.assertEqual(NucleosomeCaller(source,5).call_chromosome("chrI",1000),[])

    def test_peak_at_threshold(self):
        source = make_source({ 500 : 5 },length=1000)
        calls = NucleosomeCaller(source,5).call_chromosome("chrI",1000)
        self.assertEqual([X.midpoint for X in calls],[500])

    def test_cursor_advances_past_call_by_buffer(self):
        source = make_source({ 1000 : 10 },length=3000)
        debug = io.StringIO()
        calls = NucleosomeCaller(source,5,debug=debug).call_chromosome("chrI",3000)
        self.assertEqual(len(calls),1)
        self.assertEqual((calls[0].start,calls[0].stop),(927,1073))
        trace = debug.getvalue()
        self.assertIn("### Window chrI:871..1015",trace)
        self.assertIn("Advancing position to 1078",trace)
        self.assertIn("### Window chrI:1078..1222",trace)

    def test_verification_reported_in_trace(self):
        # window [1,145] cuts off the true maximum at 150
        source = make_source({ 140 : 5, 150 : 9 },length=1000)
        debug = io.StringIO()
        calls = NucleosomeCaller(source,5,debug=debug).call_chromosome("chrI",1000)
        self.assertEqual(calls[0].midpoint,150)
        self.assertIn("Reset the peak position from 140 to 150",debug.getvalue())

    def test_short_chromosome(self):
        source = make_source({ 50 : 5 },length=100)
        calls = NucleosomeCaller(source,1).call()
        self.assertEqual(len(calls),1)
        self.assertEqual((calls[0].start,calls[0].stop,calls[0].midpoint),(-23,123,50))

    def test_printer_reports_chromosomes(self):
        source = make_source({ 50 : 5 },length=100)
        printer = io.StringIO()
        NucleosomeCaller(source,1,printer=printer).call()
        self.assertIn("Scanning chromosome chrI",printer.getvalue())

    def test_invariants(self):
        source = make_random_source(42)
        calls = NucleosomeCaller(source,3).call()
        self.assertTrue(len(calls) > 0)
        last_start = {}
        for call in calls:
            self.assertEqual(call.stop - call.start,146)
            self.assertEqual(call.midpoint,call.start + 73)
            self.assertEqual(call.midpoint,call.stop - 73)
            if call.fuzziness is not None:
                self.assertTrue(call.fuzziness >= 0)
            self.assertTrue(call.start >= last_start.get(call.chrom,call.start))
            last_start[call.chrom] = call.start

    def test_deterministic(self):
        calls1 = NucleosomeCaller(make_random_source(42),3).call()
        calls2 = NucleosomeCaller(make_random_source(42),3).call()
        self.assertEqual(calls1,calls2)


class TestCallNucleosomes(unittest.TestCase):

    def test_serial_matches_caller(self):
        source = make_random_source(8)
        self.assertEqual(call_nucleosomes(source,3),NucleosomeCaller(source,3).call())

    def test_parallel_matches_serial(self):
        source = make_random_source(8)
        serial = call_nucleosomes(source,3,processes=1)
        parallel = call_nucleosomes(source,3,processes=2)
        self.assertEqual(serial,parallel)

    def test_debug_ignored_in_parallel(self):
        nm_once_registry.clear()
        source = make_random_source(8)
        debug = io.StringIO()
        with warnings.catch_warnings(record=True) as warns:
            warnings.simplefilter("always")
            call_nucleosomes(source,3,processes=2,debug=debug)
        self.assertEqual(debug.getvalue(),"")
        self.assertTrue(any(issubclass(X.category,ArgumentWarning) for X in warns))
