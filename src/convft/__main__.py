from convft.cli import main

raise SystemExit(main())
