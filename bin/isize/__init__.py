"""Insert-size statistics for properly paired reads in BAM files."""
