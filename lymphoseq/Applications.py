"""
Application wrappers
"""

# Info
__author__ = 'LymphoSeq Development Team'

# Imports
import os
import sys
from subprocess import check_output, STDOUT, CalledProcessError

# LymphoSeq imports
from lymphoseq.Defaults import default_muscle_exec


def runMuscle(fasta, out_file, muscle_exec=default_muscle_exec):
    """
    Executes MUSCLE to build a multiple sequence alignment

    Arguments:
      fasta : input fasta file.
      out_file : output aligned fasta file.
      muscle_exec : the name or path to the MUSCLE (v5) executable.

    Returns:
      str : MUSCLE console output.
    """
    # muscle -align sequences.fasta -output alignment.fasta
    cmd = [muscle_exec,
           '-align', os.path.abspath(fasta),
           '-output', os.path.abspath(out_file)]

    # Execute muscle
    try:
        stdout_str = check_output(cmd, stderr=STDOUT, shell=False,
                                  universal_newlines=True)
    except CalledProcessError as e:
        sys.stderr.write('\nError running command: %s\n' % ' '.join(cmd))
        sys.exit(e.output)

    return stdout_str

